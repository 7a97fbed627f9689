# Overview: Capability category constants for grouping related capabilities.


class CapabilityCategory:
    """Capability categories for organization and UI display."""
    ORDERS = "ORDERS"
    RETAIL = "RETAIL"
    ROASTERY = "ROASTERY"
    BILLING = "BILLING"
    ADMINISTRATION = "ADMINISTRATION"
    INSIGHTS = "INSIGHTS"
