"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP layer.

Modules:
    - ride_management: Ride requests and the ride status lifecycle
    - matching: Open request listing, acceptance and rejection
    - settlement: Payments and driver balances
"""

from .ride_management import (
    create_ride_request,
    get_current_passenger_ride,
    cancel_ride_request,
    get_passenger_ride_history,
    update_ride_status,
    cancel_ride_by_passenger,
    get_current_driver_ride,
    RideResult,
    RideServiceError,
    InvalidInputError,
    ForbiddenError,
    ConflictError,
    NotFoundError,
    StorageError,
)
from .matching import (
    list_open_requests,
    accept_ride_request,
    reject_ride_request,
)
from .settlement import (
    settle_ride,
    list_payments,
    get_balance,
)

__all__ = [
    # Ride requests
    "create_ride_request",
    "get_current_passenger_ride",
    "cancel_ride_request",
    "get_passenger_ride_history",
    # Matching
    "list_open_requests",
    "accept_ride_request",
    "reject_ride_request",
    # Lifecycle
    "update_ride_status",
    "cancel_ride_by_passenger",
    "get_current_driver_ride",
    "RideResult",
    # Settlement
    "settle_ride",
    "list_payments",
    "get_balance",
    # Exceptions
    "RideServiceError",
    "InvalidInputError",
    "ForbiddenError",
    "ConflictError",
    "NotFoundError",
    "StorageError",
]
