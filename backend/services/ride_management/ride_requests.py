"""
Passenger-side request handling.

A passenger holds at most one active row across ``RideRequest`` and ``Ride``.
Creation takes a row lock on the passenger's account before checking, so two
concurrent requests from the same passenger serialise on that lock; the
partial unique index on active requests catches anything that slips past.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Union

from django.db import IntegrityError, transaction

from rides.models import RideCategory, RideRequest, Ride
from .exceptions import (
    ActiveRideExistsError,
    ConflictError,
    InvalidInputError,
    RideNotFoundError,
)
from .guards import lock_account, require_passenger
from .results import RideResult

logger = logging.getLogger(__name__)

MAX_PAYMENT = Decimal("9999999999.99")
CENTS = Decimal("0.01")


# ===================== Validation =====================

def _clean_location(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} is required", error_code=f"invalid_{field}")
    return value.strip()


def _clean_ride_type(value) -> str:
    if value not in RideCategory.values:
        allowed = ", ".join(RideCategory.values)
        raise InvalidInputError(f"ride_type must be one of: {allowed}", error_code="invalid_ride_type")
    return value


def _clean_payment(value) -> Decimal:
    # bool is an int subclass; numeric strings do not count as numbers
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InvalidInputError("Payment must be a positive number", error_code="invalid_payment")

    amount = Decimal(str(value))
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError("Payment must be a positive number", error_code="invalid_payment")

    amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if amount <= 0 or amount > MAX_PAYMENT:
        raise InvalidInputError("Payment is out of range", error_code="invalid_payment")
    return amount


# ===================== Passenger Operations =====================

def check_active_ride(passenger) -> Optional[Union[RideRequest, Ride]]:
    """Return the passenger's active request or ride, if any."""
    active_request = RideRequest.objects.filter(passenger=passenger, is_active=True).first()
    if active_request:
        return active_request
    return Ride.objects.filter(passenger=passenger, is_active=True).first()


@transaction.atomic
def create_ride_request(
    passenger,
    pickup_location,
    drop_location,
    ride_type,
    payment,
) -> RideResult:
    """
    Open a new ride request for the passenger.

    Args:
        passenger: User model instance (passenger)
        pickup_location: Human-readable pickup location
        drop_location: Human-readable drop location
        ride_type: One of bike, car, rickshaw
        payment: Positive amount the passenger offers

    Returns:
        RideResult with the created request

    Raises:
        RoleNotAllowedError: caller is not a passenger
        InvalidInputError: a trip field is missing or malformed
        ActiveRideExistsError: passenger already has an active request or ride
    """
    require_passenger(passenger, "request rides")

    pickup = _clean_location(pickup_location, "pickup_location")
    drop = _clean_location(drop_location, "drop_location")
    category = _clean_ride_type(ride_type)
    amount = _clean_payment(payment)

    lock_account(passenger)

    existing = check_active_ride(passenger)
    if existing:
        kind = "ride request" if isinstance(existing, RideRequest) else "ride"
        logger.warning(
            "Passenger %s already has an active %s (id=%s)", passenger.pk, kind, existing.pk
        )
        raise ActiveRideExistsError(f"Only one active {kind} allowed at a time")

    try:
        with transaction.atomic():
            ride_request = RideRequest.objects.create(
                passenger=passenger,
                pickup_location=pickup,
                drop_location=drop,
                ride_type=category,
                payment=amount,
                status=RideRequest.Status.REQUESTED,
                is_active=True,
            )
    except IntegrityError:
        logger.warning("Concurrent ride request rejected for passenger %s", passenger.pk)
        raise ActiveRideExistsError("Only one active ride request allowed at a time")

    logger.info("Ride request %s created by passenger %s", ride_request.pk, passenger.pk)

    return RideResult(
        success=True,
        ride_request=ride_request,
        message="Ride requested. Waiting for a driver to accept."
    )


def get_current_passenger_ride(passenger) -> Optional[Union[RideRequest, Ride]]:
    """Get passenger's open request, else their active ride, newest first."""
    require_passenger(passenger, "view current ride")

    ride_request = (
        RideRequest.objects.filter(passenger=passenger, is_active=True)
        .order_by("-created_at", "-id")
        .first()
    )
    if ride_request:
        return ride_request

    return (
        Ride.objects.filter(passenger=passenger, is_active=True)
        .select_related("driver")
        .order_by("-created_at", "-id")
        .first()
    )


@transaction.atomic
def cancel_ride_request(passenger, ride_request_id: int) -> RideResult:
    """
    Cancel the passenger's open request.

    The status check and the write are one conditional UPDATE, so a request
    accepted by a driver in the meantime cannot be cancelled.
    """
    require_passenger(passenger, "cancel ride requests")

    updated = RideRequest.objects.filter(
        id=ride_request_id,
        passenger=passenger,
        status=RideRequest.Status.REQUESTED,
        is_active=True,
    ).update(status=RideRequest.Status.CANCELLED, is_active=False)

    if not updated:
        current_status = (
            RideRequest.objects.filter(id=ride_request_id, passenger=passenger)
            .values_list("status", flat=True)
            .first()
        )
        if current_status is None:
            raise RideNotFoundError("Ride request not found")
        raise ConflictError(
            f"Cannot cancel - ride request is already {current_status}",
            error_code="cannot_cancel",
        )

    ride_request = RideRequest.objects.get(pk=ride_request_id)
    logger.info("Ride request %s cancelled by passenger %s", ride_request_id, passenger.pk)

    return RideResult(
        success=True,
        ride_request=ride_request,
        message="Ride request cancelled"
    )


def get_passenger_ride_history(passenger) -> List[Union[RideRequest, Ride]]:
    """Cancelled requests plus completed/cancelled rides, newest first."""
    require_passenger(passenger, "view ride history")

    cancelled_requests = list(
        RideRequest.objects.filter(passenger=passenger, status=RideRequest.Status.CANCELLED)
    )
    finished_rides = list(
        Ride.objects.filter(
            passenger=passenger,
            status__in=[Ride.Status.COMPLETED, Ride.Status.CANCELLED],
        ).select_related("driver")
    )

    return sorted(
        cancelled_requests + finished_rides,
        # Ties on created_at put rides before requests, then higher ids first
        key=lambda item: (item.created_at, isinstance(item, Ride), item.pk),
        reverse=True,
    )
