"""
Ride status state machine.

    accepted ──> in_progress ──> completed
        │             │
        ├─────────────┴────────> cancelled
        └──────────────────────> completed

``completed`` and ``cancelled`` are terminal. Completion settles the payment
inside the same transaction as the status write.
"""

import logging
from typing import FrozenSet, Dict, Optional

from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.utils import timezone

from rides.models import Ride, RideRequest
from services.settlement import settle_ride
from .exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    RideNotFoundError,
)
from .guards import require_driver, require_passenger
from .results import RideResult
from .ride_requests import cancel_ride_request

logger = logging.getLogger(__name__)

Status = Ride.Status

ALLOWED_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    Status.ACCEPTED: frozenset({Status.IN_PROGRESS, Status.COMPLETED, Status.CANCELLED}),
    Status.IN_PROGRESS: frozenset({Status.COMPLETED, Status.CANCELLED}),
    Status.COMPLETED: frozenset(),
    Status.CANCELLED: frozenset(),
}

_unmapped = set(Status) - set(ALLOWED_TRANSITIONS)
if _unmapped:
    raise ImproperlyConfigured(f"Ride statuses without a transition rule: {sorted(s.value for s in _unmapped)}")

ACTIVE_STATUSES = frozenset({Status.ACCEPTED, Status.IN_PROGRESS})
TERMINAL_STATUSES = frozenset(status for status, targets in ALLOWED_TRANSITIONS.items() if not targets)

# Targets a driver may request. "accepted" is only ever set by the matching engine.
DRIVER_TARGETS = frozenset({Status.IN_PROGRESS, Status.COMPLETED, Status.CANCELLED})

# Once a trip has started only the driver can change it.
PASSENGER_CANCELLABLE = frozenset({Status.ACCEPTED})


def parse_driver_status(value) -> Ride.Status:
    if not isinstance(value, str) or value not in {target.value for target in DRIVER_TARGETS}:
        allowed = ", ".join(sorted(DRIVER_TARGETS))
        raise InvalidInputError(f"Invalid status. Expected one of: {allowed}", error_code="invalid_status")
    return Status(value)


def can_transition(current, target) -> bool:
    return Status(target) in ALLOWED_TRANSITIONS[Status(current)]


# ===================== Driver Operations =====================

@transaction.atomic
def update_ride_status(driver, ride_id: int, new_status) -> RideResult:
    """
    Move one of the driver's rides to a new status.

    Availability is not checked: it gates taking new work, not finishing an
    assigned ride.

    Args:
        driver: User model instance (driver)
        ride_id: ID of the ride
        new_status: in_progress, completed or cancelled

    Returns:
        RideResult with the updated ride, and the payment when completed

    Raises:
        RoleNotAllowedError: caller is not a driver
        InvalidInputError: unknown target status
        RideNotFoundError: no such ride assigned to this driver
        InvalidTransitionError: the move is not allowed from the current status
        StorageError: settlement failed; nothing was written
    """
    require_driver(driver, "update ride status")
    target = parse_driver_status(new_status)

    try:
        ride = Ride.objects.select_for_update().get(id=ride_id, driver=driver)
    except Ride.DoesNotExist:
        raise RideNotFoundError("Ride not found or not assigned to driver")

    current = Status(ride.status)
    if current in TERMINAL_STATUSES:
        raise InvalidTransitionError(f"Cannot update status of a {current.label.lower()} ride")
    if not can_transition(current, target):
        raise InvalidTransitionError(f"Cannot change ride status from {current} to {target}")

    updated = Ride.objects.filter(pk=ride.pk, status=current).update(
        status=target,
        is_active=target in ACTIVE_STATUSES,
        updated_at=timezone.now(),
    )
    if not updated:
        logger.warning("Ride %s changed status while driver %s was updating it", ride.pk, driver.pk)
        raise InvalidTransitionError("Ride status changed concurrently. Reload and retry.")

    payment = None
    if target == Status.COMPLETED:
        payment = settle_ride(ride.pk, driver.pk, ride.payment)

    ride.refresh_from_db()
    logger.info("Ride %s moved %s -> %s by driver %s", ride.pk, current, target, driver.pk)

    if payment is not None:
        message = "Status updated and payment processed"
    else:
        message = "Status updated"

    return RideResult(
        success=True,
        ride=ride,
        payment=payment,
        message=message,
        extra={"previous_status": current.value},
    )


def get_current_driver_ride(driver) -> Optional[Ride]:
    """Get driver's current active ride."""
    require_driver(driver, "view current ride")
    return (
        Ride.objects.filter(driver=driver, is_active=True)
        .select_related("passenger")
        .first()
    )


# ===================== Passenger Operations =====================

@transaction.atomic
def cancel_ride_by_passenger(passenger, ride_id: int) -> RideResult:
    """
    Cancel an open request or an accepted ride by passenger.

    The id is first matched against the passenger's open requests, then
    against their rides.
    """
    require_passenger(passenger, "cancel rides")

    has_open_request = RideRequest.objects.filter(
        id=ride_id,
        passenger=passenger,
        status=RideRequest.Status.REQUESTED,
        is_active=True,
    ).exists()
    if has_open_request:
        return cancel_ride_request(passenger, ride_id)

    try:
        ride = Ride.objects.select_for_update().get(id=ride_id, passenger=passenger)
    except Ride.DoesNotExist:
        # Reports a cancelled request as a conflict, anything else as not found
        return cancel_ride_request(passenger, ride_id)

    if Status(ride.status) not in PASSENGER_CANCELLABLE:
        raise InvalidTransitionError(
            f"Cannot cancel ride - it is already {Status(ride.status).label.lower()}",
            error_code="cannot_cancel",
        )

    updated = Ride.objects.filter(
        pk=ride.pk,
        passenger=passenger,
        status__in=PASSENGER_CANCELLABLE,
    ).update(status=Status.CANCELLED, is_active=False, updated_at=timezone.now())
    if not updated:
        raise InvalidTransitionError("Ride status changed concurrently. Reload and retry.", error_code="cannot_cancel")

    ride.refresh_from_db()
    logger.info("Ride %s cancelled by passenger %s", ride.pk, passenger.pk)

    return RideResult(
        success=True,
        ride=ride,
        message="Ride cancelled",
        extra={"was_assigned": True},
    )
