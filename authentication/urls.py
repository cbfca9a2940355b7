from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from authentication.api.views import (
    AdminUserViewSet,
    KycViewSet,
    LoginAPIView,
    MeAPIView,
    RegisterAPIView,
    UserAddressViewSet,
)

router = DefaultRouter()
router.register(r"kyc", KycViewSet, basename="kyc")
router.register(r"addresses", UserAddressViewSet, basename="address")
router.register(r"admin/users", AdminUserViewSet, basename="admin-user")

app_name = "authentication"

urlpatterns = [
    path("auth/register/", RegisterAPIView.as_view(), name="register"),
    path("auth/login/", LoginAPIView.as_view(), name="login"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("auth/me/", MeAPIView.as_view(), name="me"),
    path("", include(router.urls)),
]
