"""
AuthService - registration, login and profile management.

Tokens are issued with rest_framework_simplejwt. Blocked and deactivated
accounts are refused at login even when the password is correct.
"""

from typing import Dict, Optional

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework_simplejwt.tokens import RefreshToken

from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

User = get_user_model()

SELF_SERVICE_ROLES = ("customer", "agent", "vendor")
PROFILE_FIELDS = ("first_name", "last_name", "phone_number", "display_image", "location")


class AuthService(BaseService):
    @staticmethod
    def issue_tokens(user) -> Dict[str, str]:
        refresh = RefreshToken.for_user(user)
        refresh["role"] = user.role
        return {"access": str(refresh.access_token), "refresh": str(refresh)}

    @BaseService.log_performance
    def register(
        self,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
        phone_number: str = "",
        role: str = "customer",
    ) -> ServiceResult[Dict]:
        """
        Create an account and return it with a fresh token pair.

        Only customer, agent and vendor accounts can be self-registered; admins
        are provisioned out of band.
        """
        email = (email or "").strip().lower()
        if not email or not password:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Email and password are required")
        if role not in SELF_SERVICE_ROLES:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Cannot register with role '{role}'")
        if User.objects.filter(email__iexact=email).exists():
            return service_err(ErrorCodes.EMAIL_TAKEN, "An account with this email already exists")

        try:
            with transaction.atomic():
                user = User.objects.create_user(
                    username=email,
                    email=email,
                    password=password,
                    first_name=first_name or "",
                    last_name=last_name or "",
                    phone_number=phone_number or "",
                    role=role,
                )
        except IntegrityError:
            return service_err(ErrorCodes.EMAIL_TAKEN, "An account with this email already exists")

        self.logger.info(f"Registered {role} account {user.id}")
        return service_ok({"user": user, **self.issue_tokens(user)})

    @BaseService.log_performance
    def login(self, email: str, password: str) -> ServiceResult[Dict]:
        if not email or not password:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Email and password are required")

        user = User.objects.filter(email__iexact=email.strip()).first()
        if user is None or not user.check_password(password):
            self.logger.warning(f"Failed login attempt for {email}")
            return service_err(ErrorCodes.INVALID_CREDENTIALS, "Invalid email or password")

        user_settings = user.get_settings()
        if user_settings.is_blocked:
            return service_err(ErrorCodes.ACCOUNT_BLOCKED, "This account has been blocked")
        if user_settings.is_deactivated or not user.is_active:
            return service_err(ErrorCodes.ACCOUNT_DEACTIVATED, "This account has been deactivated")

        user_settings.last_login_at = timezone.now()
        user_settings.save(update_fields=["last_login_at", "updated_at"])

        return service_ok({"user": user, **self.issue_tokens(user)})

    def update_profile(self, user, data: Dict) -> ServiceResult:
        changed = [field for field in PROFILE_FIELDS if field in data]
        for field in changed:
            setattr(user, field, data[field])
        if changed:
            user.save(update_fields=changed)
        return service_ok(user)

    def get_user(self, user_id) -> ServiceResult:
        user: Optional[User] = User.objects.filter(pk=user_id).first()
        if user is None:
            return service_err(ErrorCodes.USER_NOT_FOUND, "User not found")
        return service_ok(user)
