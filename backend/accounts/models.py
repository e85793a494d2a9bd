from decimal import Decimal

from django.db import models
from django.contrib.auth.models import AbstractUser


class User(AbstractUser):
    """Account with a passenger/driver role, driver availability and balance."""

    class Role(models.TextChoices):
        PASSENGER = 'passenger', 'Passenger'
        DRIVER = 'driver', 'Driver'

    email = models.EmailField(unique=True)
    role = models.CharField(max_length=10, choices=Role.choices)
    phone_number = models.CharField(max_length=15, blank=True)

    # Driver-only state
    is_available = models.BooleanField(default=False)
    balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    class Meta:
        db_table = 'users'

    @property
    def is_passenger(self):
        return self.role == self.Role.PASSENGER

    @property
    def is_driver(self):
        return self.role == self.Role.DRIVER

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"
