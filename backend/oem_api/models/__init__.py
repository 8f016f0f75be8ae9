from .users import User
from .orders import Order
from .compliance import ComplianceItem
from .payments import Payment
from .notifications import Notification

__all__ = [
    'User',
    'Order',
    'ComplianceItem',
    'Payment',
    'Notification',
]
