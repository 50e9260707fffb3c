"""Role permissions for the Vmax Sales API."""
from rest_framework.permissions import SAFE_METHODS, BasePermission

from accounts.scoping import CUSTOMER_SERVICE, MANAGER, SALESMAN, TEAM_LEADER


def _has_role(user, roles) -> bool:
    if not (user and user.is_authenticated):
        return False
    return user.is_superuser or user.role in roles


class IsManager(BasePermission):
    """Allow access only to managers (and superusers)."""

    def has_permission(self, request, view):
        return _has_role(request.user, (MANAGER,))


class IsSalesStaff(BasePermission):
    """Any CRM role: manager, team leader, salesman or customer service."""

    def has_permission(self, request, view):
        return _has_role(request.user, (MANAGER, TEAM_LEADER, SALESMAN, CUSTOMER_SERVICE))


class IsManagerOrReadOnly(BasePermission):
    """Reads for any sales staff; writes for managers only."""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return IsSalesStaff().has_permission(request, view)
        return IsManager().has_permission(request, view)


class CanSendNotifications(BasePermission):
    """Every sales role reads notifications; managers and team leaders send them."""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS or getattr(view, 'action', None) in ('read', 'read_all'):
            return IsSalesStaff().has_permission(request, view)
        return _has_role(request.user, (MANAGER, TEAM_LEADER))
