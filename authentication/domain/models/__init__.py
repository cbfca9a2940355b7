from .address import UserAddress
from .user import CustomUser, UserSettings

__all__ = [
    "CustomUser",
    "UserSettings",
    "UserAddress",
]
