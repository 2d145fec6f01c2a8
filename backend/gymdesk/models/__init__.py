from .accounts import Account, SessionToken
from .members import Member
from .billing import Bill
from .packages import FeePackage
from .notifications import Notification
from .supplements import Supplement, SupplementOrder, SupplementOrderLine
from .diet import DietPlan
from .registrations import RegistrationRequest

__all__ = [
    'Account', 'SessionToken',
    'Member',
    'Bill',
    'FeePackage',
    'Notification',
    'Supplement', 'SupplementOrder', 'SupplementOrderLine',
    'DietPlan',
    'RegistrationRequest',
]
