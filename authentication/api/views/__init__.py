from .address_views import UserAddressViewSet
from .admin_views import AdminUserViewSet
from .auth_views import LoginAPIView, MeAPIView, RegisterAPIView
from .kyc_views import KycViewSet

__all__ = [
    "RegisterAPIView",
    "LoginAPIView",
    "MeAPIView",
    "KycViewSet",
    "UserAddressViewSet",
    "AdminUserViewSet",
]
