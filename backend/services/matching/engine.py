"""
Matching engine: turns open requests into assigned rides.

There is no proximity ranking. Any available driver may take any open
request they have not rejected. Acceptance is one transaction that creates
the ride and deletes the request; the delete is conditional on the request
still being open, so when two drivers race for the same request exactly one
of them gets a ride and the other sees ``RideNotAvailableError``.
"""

import logging
from typing import List

from django.db import IntegrityError, transaction

from accounts.models import User
from rides.models import Ride, RideRejection, RideRequest
from services.ride_management.exceptions import (
    ActiveRideExistsError,
    DuplicateRejectionError,
    RideNotAvailableError,
)
from services.ride_management.guards import (
    lock_account,
    require_available_driver,
    require_driver,
)
from services.ride_management.results import RideResult

logger = logging.getLogger(__name__)


def _open_requests():
    return RideRequest.objects.filter(status=RideRequest.Status.REQUESTED, is_active=True)


def list_open_requests(driver) -> List[RideRequest]:
    """
    Open requests visible to this driver, oldest first.

    Requests the driver rejected earlier are left out.
    """
    require_driver(driver, "view available rides")
    # Availability may have changed since the caller's account was loaded
    require_available_driver(User.objects.get(pk=driver.pk), "view available rides")

    rejected_ids = RideRejection.objects.filter(driver=driver).values("ride_request_id")
    return list(
        _open_requests()
        .exclude(id__in=rejected_ids)
        .order_by("created_at", "id")
    )


@transaction.atomic
def accept_ride_request(driver, ride_request_id: int) -> RideResult:
    """
    Accept an open request and turn it into a ride.

    Args:
        driver: User model instance (driver)
        ride_request_id: ID of the open request

    Returns:
        RideResult with the new ride

    Raises:
        RoleNotAllowedError: caller is not a driver
        DriverNotAvailableError: driver is not available
        ActiveRideExistsError: driver already has an active ride
        RideNotAvailableError: request is not open (accepted, cancelled or unknown)
    """
    require_driver(driver, "accept rides")

    # Lock the driver row so two accepts by the same driver serialise here
    account = lock_account(driver)
    require_available_driver(account, "accept rides")

    if Ride.objects.filter(driver=account, is_active=True).exists():
        raise ActiveRideExistsError("Only one active ride allowed at a time for a driver")

    try:
        ride_request = _open_requests().select_for_update().get(id=ride_request_id)
    except RideRequest.DoesNotExist:
        raise RideNotAvailableError("Ride request not available")

    try:
        with transaction.atomic():
            ride = Ride.objects.create(
                passenger_id=ride_request.passenger_id,
                driver=account,
                pickup_location=ride_request.pickup_location,
                drop_location=ride_request.drop_location,
                ride_type=ride_request.ride_type,
                payment=ride_request.payment,
                status=Ride.Status.ACCEPTED,
                is_active=True,
                created_at=ride_request.created_at,
            )
    except IntegrityError:
        logger.warning("Driver %s already holds an active ride; accept of %s refused", account.pk, ride_request_id)
        raise ActiveRideExistsError("Only one active ride allowed at a time for a driver")

    _, deleted = _open_requests().filter(pk=ride_request.pk).delete()
    if not deleted.get(RideRequest._meta.label, 0):
        # Someone else consumed the request first; the new ride is rolled back
        logger.warning("Driver %s lost the race for ride request %s", account.pk, ride_request_id)
        raise RideNotAvailableError("Ride request not available")

    logger.info("Ride request %s accepted by driver %s as ride %s", ride_request_id, account.pk, ride.pk)

    return RideResult(
        success=True,
        ride=ride,
        message="Ride accepted",
        extra={"ride_request_id": ride_request_id},
    )


@transaction.atomic
def reject_ride_request(driver, ride_request_id: int) -> RideResult:
    """
    Hide an open request from this driver's listings.

    The request stays open for every other driver.
    """
    require_driver(driver, "reject rides")
    require_available_driver(User.objects.get(pk=driver.pk), "reject rides")

    try:
        ride_request = _open_requests().select_for_update().get(id=ride_request_id)
    except RideRequest.DoesNotExist:
        raise RideNotAvailableError("Ride request not available")

    try:
        with transaction.atomic():
            RideRejection.objects.create(ride_request=ride_request, driver_id=driver.pk)
    except IntegrityError:
        logger.warning("Driver %s rejected ride request %s twice", driver.pk, ride_request_id)
        raise DuplicateRejectionError("You have already rejected this ride request")

    logger.info("Ride request %s rejected by driver %s", ride_request_id, driver.pk)

    return RideResult(
        success=True,
        ride_request=ride_request,
        message="Ride request rejected"
    )
