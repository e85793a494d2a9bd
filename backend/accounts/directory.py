"""
User directory: the identity lookups the ride services depend on.

Ride operations receive an already-resolved account; this module is how the
HTTP layer (and anything else) resolves one.
"""

from django.db.models import Q

from accounts.models import User
from services.ride_management.exceptions import NotFoundError


class InvalidCredentialsError(Exception):
    """Raised when an identifier/secret pair does not match an account."""
    pass


class AccountNotFoundError(NotFoundError):
    """Raised when an account id does not exist."""
    error_code = 'account_not_found'


def verify_credentials(identifier: str, secret: str) -> User:
    """
    Resolve an account by username or email and check its password.

    Raises:
        InvalidCredentialsError: unknown identifier, wrong password or
            deactivated account
    """
    if not identifier or not secret:
        raise InvalidCredentialsError("Identifier and password are required")

    user = User.objects.filter(Q(username=identifier) | Q(email__iexact=identifier)).first()
    if user is None or not user.is_active or not user.check_password(secret):
        raise InvalidCredentialsError("Invalid credentials")
    return user


def get_account(account_id: int) -> User:
    """Return a fresh copy of the account row."""
    try:
        return User.objects.get(pk=account_id)
    except User.DoesNotExist:
        raise AccountNotFoundError(f"Account {account_id} not found")
