"""
AdminService - account moderation.

Block and unblock actions are recorded in UserSettings.block_meta so support
staff can see who moderated an account and why.
"""

from typing import Dict, Optional

from django.contrib.auth import get_user_model
from django.db.models import Q
from django.utils import timezone

from utils.pagination import paginate
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

User = get_user_model()


class AdminService(BaseService):
    def list_users(self, role: Optional[str] = None, q: Optional[str] = None, page=1, size=10) -> ServiceResult[Dict]:
        queryset = User.objects.select_related("settings").order_by("-date_joined")
        if role:
            queryset = queryset.filter(role=role)
        if q:
            queryset = queryset.filter(
                Q(email__icontains=q) | Q(first_name__icontains=q) | Q(last_name__icontains=q)
            )
        return service_ok(paginate(queryset, page, size))

    def _get_user(self, user_id) -> ServiceResult:
        user = User.objects.filter(pk=user_id).first()
        if user is None:
            return service_err(ErrorCodes.USER_NOT_FOUND, "User not found")
        return service_ok(user)

    def _record(self, user_settings, history_key: str, admin, reason: str):
        meta = dict(user_settings.block_meta or {})
        history = list(meta.get(history_key, []))
        history.append({"by": str(admin.id), "reason": reason or "", "at": timezone.now().isoformat()})
        meta[history_key] = history
        user_settings.block_meta = meta

    @BaseService.log_performance
    def set_blocked(self, admin, user_id, blocked: bool, reason: str = "") -> ServiceResult:
        result = self._get_user(user_id)
        if not result.ok:
            return result
        user = result.value
        if user.pk == admin.pk:
            return service_err(ErrorCodes.INVALID_INPUT, "You cannot block your own account")

        user_settings = user.get_settings()
        if user_settings.is_blocked == blocked:
            state = "blocked" if blocked else "not blocked"
            return service_err(ErrorCodes.INVALID_INPUT, f"User is already {state}")

        user_settings.is_blocked = blocked
        self._record(user_settings, "block_history" if blocked else "unblock_history", admin, reason)
        user_settings.save(update_fields=["is_blocked", "block_meta", "updated_at"])
        self.logger.info(f"Admin {admin.id} {'blocked' if blocked else 'unblocked'} user {user.id}")
        return service_ok(user)

    @BaseService.log_performance
    def set_deactivated(self, admin, user_id, deactivated: bool) -> ServiceResult:
        result = self._get_user(user_id)
        if not result.ok:
            return result
        user = result.value
        user_settings = user.get_settings()
        user_settings.is_deactivated = deactivated
        user_settings.save(update_fields=["is_deactivated", "updated_at"])
        self.logger.info(f"Admin {admin.id} set deactivated={deactivated} on user {user.id}")
        return service_ok(user)
