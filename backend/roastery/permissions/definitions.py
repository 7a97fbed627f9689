# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import CapabilityCategory


# -- ORDERS --

ORDER_CAPABILITIES = [
    (
        "orders.read",
        "View Orders",
        "View orders of the shops the user can access",
        CapabilityCategory.ORDERS,
    ),
    (
        "orders.write",
        "Place Orders",
        "Create orders for the shops the user can access",
        CapabilityCategory.ORDERS,
    ),
    (
        "orders.fulfil",
        "Fulfil Orders",
        "See every shop's orders and move them through roasting and dispatch",
        CapabilityCategory.ORDERS,
    ),
]


# -- RETAIL --

RETAIL_CAPABILITIES = [
    (
        "retail.read",
        "View Retail Inventory",
        "View shop inventory, history, arrivals and discrepancies",
        CapabilityCategory.RETAIL,
    ),
    (
        "retail.write",
        "Update Retail Inventory",
        "Set shop inventory counts and confirm received coffee",
        CapabilityCategory.RETAIL,
    ),
]


# -- ROASTERY --

ROASTERY_CAPABILITIES = [
    (
        "greenCoffee.read",
        "View Green Coffee",
        "View green coffee lots and roasting batches",
        CapabilityCategory.ROASTERY,
    ),
    (
        "greenCoffee.write",
        "Manage Green Coffee",
        "Create green coffee lots and edit stock",
        CapabilityCategory.ROASTERY,
    ),
    (
        "roasting.write",
        "Record Roasting Batches",
        "Record roasting batches (consumes green coffee stock)",
        CapabilityCategory.ROASTERY,
    ),
]


# -- BILLING --

BILLING_CAPABILITIES = [
    (
        "billing.read",
        "View Billing",
        "View unbilled quantities and billing history",
        CapabilityCategory.BILLING,
    ),
    (
        "billing.write",
        "Close Billing Cycles",
        "Create billing events",
        CapabilityCategory.BILLING,
    ),
]


# -- ADMINISTRATION --

ADMINISTRATION_CAPABILITIES = [
    (
        "shop.manage",
        "Manage Shops",
        "Create, edit and deactivate shops and stock targets",
        CapabilityCategory.ADMINISTRATION,
    ),
    (
        "user.manage",
        "Manage Users",
        "Approve, edit, deactivate and assign users",
        CapabilityCategory.ADMINISTRATION,
    ),
    (
        "discrepancy.resolve",
        "Resolve Discrepancies",
        "Close open inventory discrepancies",
        CapabilityCategory.ADMINISTRATION,
    ),
]


# -- INSIGHTS --

INSIGHT_CAPABILITIES = [
    (
        "analytics.read",
        "View Analytics",
        "View analytics time series",
        CapabilityCategory.INSIGHTS,
    ),
    (
        "reports.read",
        "View Reports",
        "View inventory, shop and consumption reports",
        CapabilityCategory.INSIGHTS,
    ),
]


CAPABILITY_DEFINITIONS = (
    ORDER_CAPABILITIES
    + RETAIL_CAPABILITIES
    + ROASTERY_CAPABILITIES
    + BILLING_CAPABILITIES
    + ADMINISTRATION_CAPABILITIES
    + INSIGHT_CAPABILITIES
)
