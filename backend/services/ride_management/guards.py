"""Role checks and account row locks shared by the ride services."""

from accounts.models import User
from .exceptions import RoleNotAllowedError, DriverNotAvailableError


def require_passenger(user, action: str = "perform this action") -> None:
    if not getattr(user, "is_passenger", False):
        raise RoleNotAllowedError(f"Only passengers can {action}")


def require_driver(user, action: str = "perform this action") -> None:
    if not getattr(user, "is_driver", False):
        raise RoleNotAllowedError(f"Only drivers can {action}")


def require_available_driver(user, action: str = "perform this action") -> None:
    require_driver(user, action)
    if not user.is_available:
        raise DriverNotAvailableError("Driver is not available. Set your availability before taking rides.")


def lock_account(user) -> User:
    """
    Re-read the caller's account row with a row lock held until the
    surrounding transaction ends. Must be called inside ``transaction.atomic``.
    """
    return User.objects.select_for_update().get(pk=user.pk)
