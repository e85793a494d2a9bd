import logging
from decimal import Decimal
from typing import List

from django.db import DatabaseError, transaction
from django.db.models import F

from accounts.models import User
from rides.models import Payment
from services.ride_management.exceptions import StorageError
from services.ride_management.guards import require_driver

logger = logging.getLogger(__name__)


def settle_ride(ride_id: int, driver_id: int, amount: Decimal) -> Payment:
    """
    Record the payment for a completed ride and credit the driver.

    Called by the lifecycle controller inside its own transaction, so a
    failure here also undoes the ``completed`` status write. The one-to-one
    link from Payment to Ride stops a second settlement of the same ride.

    Raises:
        StorageError: the payment or the balance credit could not be written
    """
    try:
        with transaction.atomic():
            payment = Payment.objects.create(ride_id=ride_id, driver_id=driver_id, amount=amount)
            credited = User.objects.filter(pk=driver_id).update(balance=F("balance") + amount)
            if credited != 1:
                raise StorageError(f"Balance row for driver {driver_id} is missing")
    except DatabaseError as exc:
        logger.exception("Settlement failed for ride %s", ride_id)
        raise StorageError("Failed to record payment") from exc

    logger.info("Settled ride %s: %s credited to driver %s", ride_id, amount, driver_id)
    return payment


def list_payments(driver) -> List[Payment]:
    require_driver(driver, "view payment records")
    return list(Payment.objects.filter(driver=driver).order_by("-created_at", "-id"))


def get_balance(driver) -> Decimal:
    """Balance as currently stored, not as cached on the request's user object."""
    require_driver(driver, "view balance")
    return User.objects.values_list("balance", flat=True).get(pk=driver.pk)
