"""
Role based permission classes for the lab API.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class HasRole(BasePermission):
    """Allow access to users whose role is in ``roles``."""
    roles: frozenset = frozenset()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in self.roles


class IsAdminRole(HasRole):
    roles = frozenset({"ADMIN"})


class IsLabTechRole(HasRole):
    roles = frozenset({"LABTECH"})


class IsDoctorOrAdmin(HasRole):
    """Ordering roles: may create requests and catalog entries."""
    roles = frozenset({"DOCTOR", "ADMIN"})


class IsLabStaff(HasRole):
    """Admins and lab technicians."""
    roles = frozenset({"ADMIN", "LABTECH"})


class ReadOnly(BasePermission):
    """Allow read-only access (GET, HEAD, OPTIONS)."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return request.method in SAFE_METHODS
