from .branches import Branch
from .accounts import User, Staff
from .customers import Customer, CustomerStatus
from .api_keys import ApiKey
from .security import SecurityEvent

__all__ = [
    'Branch',
    'User', 'Staff',
    'Customer', 'CustomerStatus',
    'ApiKey',
    'SecurityEvent',
]
