# Overview: Roles and the capabilities each role implies.

from .definitions import CAPABILITY_DEFINITIONS


ROLE_RETAIL_OWNER = "retailOwner"
ROLE_ROASTERY_OWNER = "roasteryOwner"
ROLE_ROASTER = "roaster"
ROLE_SHOP_MANAGER = "shopManager"
ROLE_BARISTA = "barista"

# "owner" is a legacy admin alias; it is honoured but never assigned.
ROLE_OWNER = "owner"

USER_ROLES = (
    ROLE_RETAIL_OWNER,
    ROLE_ROASTERY_OWNER,
    ROLE_ROASTER,
    ROLE_SHOP_MANAGER,
    ROLE_BARISTA,
)

# Admin roles pass every role check and see every active shop.
ADMIN_ROLES = frozenset({ROLE_OWNER, ROLE_ROASTERY_OWNER, ROLE_RETAIL_OWNER})

_ALL_CAPABILITIES = frozenset(cap[0] for cap in CAPABILITY_DEFINITIONS)

_SHOP_CAPABILITIES = frozenset({
    "orders.read",
    "orders.write",
    "retail.read",
    "retail.write",
})

DEFAULT_ROLE_CAPABILITIES = {
    ROLE_OWNER: _ALL_CAPABILITIES,
    ROLE_ROASTERY_OWNER: _ALL_CAPABILITIES,
    ROLE_RETAIL_OWNER: _ALL_CAPABILITIES,
    ROLE_ROASTER: _SHOP_CAPABILITIES | {
        "orders.fulfil",
        "greenCoffee.read",
        "greenCoffee.write",
        "roasting.write",
    },
    ROLE_SHOP_MANAGER: _SHOP_CAPABILITIES | {
        "analytics.read",
        "reports.read",
    },
    ROLE_BARISTA: _SHOP_CAPABILITIES,
}
