# drivers/permissions.py
from rest_framework.permissions import BasePermission


class IsDriver(BasePermission):
    """
    Allows access only to users with role == 'driver'.
    Availability is not checked here; services decide when it matters.
    """
    message = "Only drivers can access this endpoint"
    code = "role_not_allowed"

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return getattr(user, "is_driver", False)
