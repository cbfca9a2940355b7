import logging
from typing import Iterable

from utils.exceptions import ForbiddenError

# Canonical role names
ROLE_CUSTOMER = "customer"
ROLE_AGENT = "agent"
ROLE_VENDOR = "vendor"
ROLE_ADMIN = "admin"

# Roles allowed to fulfil shopping lists
FULFILMENT_ROLES = (ROLE_AGENT, ROLE_VENDOR)

logger = logging.getLogger(__name__)


def is_admin(user) -> bool:
    """Consistent admin check across the codebase."""
    if not getattr(user, "is_authenticated", False):
        return False
    return bool(getattr(user, "is_superuser", False) or getattr(user, "role", None) == ROLE_ADMIN)


def is_agent(user) -> bool:
    """Agents and vendors both fulfil orders."""
    if not getattr(user, "is_authenticated", False):
        return False
    return getattr(user, "role", None) in FULFILMENT_ROLES


def is_customer(user) -> bool:
    if not getattr(user, "is_authenticated", False):
        return False
    return getattr(user, "role", None) == ROLE_CUSTOMER


def has_role(user, role: str) -> bool:
    if role == ROLE_ADMIN:
        return is_admin(user)
    if role == ROLE_AGENT:
        return is_agent(user)
    return getattr(user, "role", None) == role


def has_any_role(user, roles: Iterable[str]) -> bool:
    return any(has_role(user, r) for r in roles)


def require_role(user, roles: Iterable[str]):
    """Raise ForbiddenError unless the user has one of the roles."""
    roles = list(roles)
    if not has_any_role(user, roles):
        logger.warning(
            "RBAC denial: user_id=%s required=%s",
            getattr(user, "id", None),
            roles,
        )
        raise ForbiddenError(f"This action requires one of the roles: {', '.join(roles)}")
