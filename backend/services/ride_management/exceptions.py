"""
Custom exceptions for ride management.

Every failure a ride operation can report belongs to one of five kinds:
invalid_input, forbidden, conflict, not_found and storage_error. The
transport layer maps the kind to a response; ``error_code`` is the specific
reason shown to the caller.
"""


class RideServiceError(Exception):
    """Base class for failures raised by the ride services."""
    kind = "error"
    error_code = "error"

    def __init__(self, message: str = "", error_code: str = None):
        super().__init__(message)
        if error_code:
            self.error_code = error_code


# ===================== Taxonomy =====================

class InvalidInputError(RideServiceError):
    """Malformed, missing or out-of-range caller data."""
    kind = "invalid_input"
    error_code = "invalid_input"


class ForbiddenError(RideServiceError):
    """Role or availability precondition not met."""
    kind = "forbidden"
    error_code = "forbidden"


class ConflictError(RideServiceError):
    """The operation would break a one-active-per-party or lifecycle rule."""
    kind = "conflict"
    error_code = "conflict"


class NotFoundError(RideServiceError):
    """Referenced entity is absent or not in the expected state."""
    kind = "not_found"
    error_code = "not_found"


class StorageError(RideServiceError):
    """The database failed. The enclosing transaction is rolled back."""
    kind = "storage_error"
    error_code = "storage_error"


# ===================== Specific failures =====================

class RoleNotAllowedError(ForbiddenError):
    """Raised when the caller's role cannot perform the operation."""
    error_code = "role_not_allowed"


class DriverNotAvailableError(ForbiddenError):
    """Raised when driver is not available to take new rides."""
    error_code = "driver_not_available"


class ActiveRideExistsError(ConflictError):
    """Raised when user already has an active request or ride."""
    error_code = "active_ride_exists"


class InvalidTransitionError(ConflictError):
    """Raised when a ride cannot move from its current status to the target."""
    error_code = "invalid_transition"


class DuplicateRejectionError(ConflictError):
    """Raised when a driver rejects the same request twice."""
    error_code = "already_rejected"


class RideNotFoundError(NotFoundError):
    """Raised when a ride or request cannot be found."""
    error_code = "ride_not_found"


class RideNotAvailableError(NotFoundError):
    """Raised when a request is no longer open (accepted, cancelled or gone)."""
    error_code = "ride_not_available"
