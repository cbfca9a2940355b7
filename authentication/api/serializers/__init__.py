from .address_serializers import UserAddressSerializer
from .admin_serializers import BlockUserSerializer
from .auth_serializers import (
    KycImagesSerializer,
    LoginSerializer,
    NinSerializer,
    ProfileUpdateSerializer,
    PublicUserSerializer,
    UserRegistrationSerializer,
    UserSerializer,
    UserSettingsSerializer,
)

__all__ = [
    "UserSerializer",
    "UserSettingsSerializer",
    "PublicUserSerializer",
    "UserRegistrationSerializer",
    "LoginSerializer",
    "ProfileUpdateSerializer",
    "NinSerializer",
    "KycImagesSerializer",
    "UserAddressSerializer",
    "BlockUserSerializer",
]
