# passengers/permissions.py
from rest_framework.permissions import BasePermission


class IsPassenger(BasePermission):
    """
    Allows access only to users with role == 'passenger'.
    Keeps role check logic centralized.
    """
    message = "Only passengers can access this endpoint"
    code = "role_not_allowed"

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return getattr(user, "is_passenger", False)
