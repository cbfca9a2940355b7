from authentication.domain.models.address import UserAddress
from authentication.domain.models.user import CustomUser, UserSettings


__all__ = [
    "CustomUser",
    "UserSettings",
    "UserAddress",
]
