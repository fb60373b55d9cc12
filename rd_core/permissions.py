# rd_core/permissions.py
from __future__ import annotations

from typing import Set

from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission, SAFE_METHODS

from .models import UserRole
from .workflows import ADMIN, READONLY, normalize_role


# ------------------------------------------------------------------
# Role definitions
# ------------------------------------------------------------------
WRITE_ROLES = {"SALES_MANAGER", "RD_DEV", "RD_MANAGER", "ADMIN"}
ADMIN_ROLES = {"ADMIN"}


# ------------------------------------------------------------------
# Utilities
# ------------------------------------------------------------------
def resolve_user_roles(user) -> Set[str]:
    """
    Canonical role set of a user. Superusers are treated as ADMIN.
    Users without any role row are READONLY.
    """
    if not user or not getattr(user, "is_authenticated", False):
        return set()

    if getattr(user, "is_superuser", False):
        return {ADMIN}

    roles = {
        normalize_role(r)
        for r in UserRole.objects.filter(user=user).values_list("role", flat=True)
    }
    return roles or {READONLY}


def user_has_any_role(user, allowed_roles: Set[str]) -> bool:
    return bool(resolve_user_roles(user) & set(allowed_roles))


def require_roles(user, allowed_roles: Set[str], action: str) -> None:
    """
    Service-level role check; raises DRF PermissionDenied (403).
    """
    if not user_has_any_role(user, allowed_roles):
        raise PermissionDenied(
            f"You do not have the required role to {action}. "
            f"Required: {', '.join(sorted(allowed_roles))}."
        )


# ------------------------------------------------------------------
# Permission classes
# ------------------------------------------------------------------
class IsRoleAllowedOrReadOnly(BasePermission):
    """
    Read: any authenticated user
    Write: requires one of the view's `write_roles` (default WRITE_ROLES)
    """

    message = "Write access denied. Your role does not allow this change."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False

        if request.method in SAFE_METHODS:
            return True

        allowed = getattr(view, "write_roles", None) or WRITE_ROLES
        return user_has_any_role(user, allowed)


class IsAdminRoleOrReadOnly(IsRoleAllowedOrReadOnly):
    message = "Only administrators can manage roles."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        if request.method in SAFE_METHODS:
            return True
        return user_has_any_role(user, ADMIN_ROLES)
