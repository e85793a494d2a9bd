import logging

from django.db import transaction

from accounts.models import User
from services.ride_management.exceptions import InvalidInputError
from services.ride_management.guards import require_driver

logger = logging.getLogger(__name__)


# DRIVER AVAILABILITY UPDATE
@transaction.atomic
def update_driver_availability(driver: User, is_available) -> User:
    """
    Toggle whether the driver takes new rides.

    A ride the driver already holds is unaffected; going offline only hides
    open requests and blocks accept/reject.
    """
    require_driver(driver, "update availability")
    if not isinstance(is_available, bool):
        raise InvalidInputError("is_available must be true or false", error_code="invalid_availability")

    User.objects.filter(pk=driver.pk).update(is_available=is_available)
    driver.is_available = is_available

    logger.info("Driver %s availability set to %s", driver.pk, is_available)
    return driver
