# Overview: Capability system package.
# Re-exports all public APIs so callers import from roastery.permissions.

from .categories import CapabilityCategory
from .definitions import (
    CAPABILITY_DEFINITIONS,
    ORDER_CAPABILITIES,
    RETAIL_CAPABILITIES,
    ROASTERY_CAPABILITIES,
    BILLING_CAPABILITIES,
    ADMINISTRATION_CAPABILITIES,
    INSIGHT_CAPABILITIES,
)
from .roles import (
    ROLE_RETAIL_OWNER,
    ROLE_ROASTERY_OWNER,
    ROLE_ROASTER,
    ROLE_SHOP_MANAGER,
    ROLE_BARISTA,
    ROLE_OWNER,
    USER_ROLES,
    ADMIN_ROLES,
    DEFAULT_ROLE_CAPABILITIES,
)
from .helpers import (
    get_all_capability_codes,
    get_capability_definition,
    validate_capability_code,
    implied_capabilities,
)

__all__ = [
    "CapabilityCategory",
    "CAPABILITY_DEFINITIONS",
    "ORDER_CAPABILITIES",
    "RETAIL_CAPABILITIES",
    "ROASTERY_CAPABILITIES",
    "BILLING_CAPABILITIES",
    "ADMINISTRATION_CAPABILITIES",
    "INSIGHT_CAPABILITIES",
    "ROLE_RETAIL_OWNER",
    "ROLE_ROASTERY_OWNER",
    "ROLE_ROASTER",
    "ROLE_SHOP_MANAGER",
    "ROLE_BARISTA",
    "ROLE_OWNER",
    "USER_ROLES",
    "ADMIN_ROLES",
    "DEFAULT_ROLE_CAPABILITIES",
    "get_all_capability_codes",
    "get_capability_definition",
    "validate_capability_code",
    "implied_capabilities",
]
