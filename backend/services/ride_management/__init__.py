"""
Ride management service - Core ride lifecycle operations.

This module handles:
    - Creating and cancelling ride requests
    - Passenger current ride and history
    - Ride status transitions (with settlement on completion)
    - Passenger cancellation of accepted rides
"""

from .exceptions import (
    RideServiceError,
    InvalidInputError,
    ForbiddenError,
    ConflictError,
    NotFoundError,
    StorageError,
    RoleNotAllowedError,
    DriverNotAvailableError,
    ActiveRideExistsError,
    InvalidTransitionError,
    DuplicateRejectionError,
    RideNotFoundError,
    RideNotAvailableError,
)
from .results import RideResult
from .ride_requests import (
    create_ride_request,
    get_current_passenger_ride,
    cancel_ride_request,
    get_passenger_ride_history,
)
from .ride_lifecycle import (
    ALLOWED_TRANSITIONS,
    update_ride_status,
    cancel_ride_by_passenger,
    get_current_driver_ride,
)

__all__ = [
    # Lifecycle operations
    "create_ride_request",
    "get_current_passenger_ride",
    "cancel_ride_request",
    "get_passenger_ride_history",
    "ALLOWED_TRANSITIONS",
    "update_ride_status",
    "cancel_ride_by_passenger",
    "get_current_driver_ride",
    "RideResult",
    # Exceptions
    "RideServiceError",
    "InvalidInputError",
    "ForbiddenError",
    "ConflictError",
    "NotFoundError",
    "StorageError",
    "RoleNotAllowedError",
    "DriverNotAvailableError",
    "ActiveRideExistsError",
    "InvalidTransitionError",
    "DuplicateRejectionError",
    "RideNotFoundError",
    "RideNotAvailableError",
]
