from __future__ import annotations

from typing import Iterable

from rest_framework.permissions import BasePermission

from utils.rbac import has_any_role


class RoleRequired(BasePermission):
    """Base permission that enforces required roles and refuses blocked accounts."""

    required_roles: Iterable[str] = ()
    message = "You do not have permission to perform this action."

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if user is None or not getattr(user, "is_authenticated", False):
            return False

        user_settings = getattr(user, "settings", None)
        if user_settings is not None and (user_settings.is_blocked or user_settings.is_deactivated):
            self.message = "This account is blocked or deactivated."
            return False

        required = tuple(self.required_roles)
        if not required:
            return True
        return has_any_role(user, required)

    def has_object_permission(self, request, view, obj) -> bool:
        return self.has_permission(request, view)


class ActiveAccountRequired(RoleRequired):
    required_roles = ()


class AgentRequired(RoleRequired):
    required_roles = ("agent",)
    message = "Only agents can perform this action."


class AdminRequired(RoleRequired):
    required_roles = ("admin",)
    message = "Admin access required."
