from .shops import Shop, CoffeeLargeBagTarget
from .auth import User, UserShop, UserCapabilityGrant, SessionToken
from .coffee import GreenCoffee, RoastingBatch, COFFEE_GRADES
from .orders import Order
from .retail import RetailInventory, RetailInventoryHistory, DispatchConfirmation, InventoryDiscrepancy
from .billing import BillingEvent, BillingEventDetail

__all__ = [
    'Shop', 'CoffeeLargeBagTarget',
    'User', 'UserShop', 'UserCapabilityGrant', 'SessionToken',
    'GreenCoffee', 'RoastingBatch', 'COFFEE_GRADES',
    'Order',
    'RetailInventory', 'RetailInventoryHistory', 'DispatchConfirmation', 'InventoryDiscrepancy',
    'BillingEvent', 'BillingEventDetail',
]
