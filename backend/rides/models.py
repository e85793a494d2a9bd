from django.db import models
from django.db.models import Q
from django.conf import settings
from django.utils import timezone


class RideCategory(models.TextChoices):
    BIKE = 'bike', 'Bike'
    CAR = 'car', 'Car'
    RICKSHAW = 'rickshaw', 'Rickshaw'


class RideRequest(models.Model):
    """An open solicitation by a passenger, waiting for a driver to accept it."""

    class Status(models.TextChoices):
        REQUESTED = 'requested', 'Requested'
        CANCELLED = 'cancelled', 'Cancelled'

    passenger = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_requests'
    )

    # Trip
    pickup_location = models.TextField()
    drop_location = models.TextField()
    ride_type = models.CharField(max_length=10, choices=RideCategory.choices)
    payment = models.DecimalField(max_digits=12, decimal_places=2)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.REQUESTED)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'ride_requests'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['passenger'],
                condition=Q(is_active=True),
                name='one_active_request_per_passenger'
            )
        ]

    def __str__(self):
        return f"Request #{self.id} - {self.passenger_id} - {self.status}"


class Ride(models.Model):
    """A request that a driver accepted. Status only ever moves forward."""

    class Status(models.TextChoices):
        ACCEPTED = 'accepted', 'Accepted'
        IN_PROGRESS = 'in_progress', 'In Progress'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'

    passenger = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='rides_taken'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='rides_driven'
    )

    # Trip, copied from the request
    pickup_location = models.TextField()
    drop_location = models.TextField()
    ride_type = models.CharField(max_length=10, choices=RideCategory.choices)
    payment = models.DecimalField(max_digits=12, decimal_places=2)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACCEPTED)
    is_active = models.BooleanField(default=True)

    # created_at is copied from the request, not the acceptance time
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'rides'
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['driver'],
                condition=Q(is_active=True),
                name='one_active_ride_per_driver'
            ),
            models.UniqueConstraint(
                fields=['passenger'],
                condition=Q(is_active=True),
                name='one_active_ride_per_passenger'
            ),
        ]

    def __str__(self):
        return f"Ride #{self.id} - {self.passenger_id} -> {self.driver_id} - {self.status}"


class RideRejection(models.Model):
    """
    A driver declined a specific request.

    Only used as a filter on that driver's listings. The request may be deleted
    once another driver accepts it, so there is no database-level FK.
    """

    ride_request = models.ForeignKey(
        RideRequest,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='rejections'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ride_rejections'
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'ride_rejections'
        constraints = [
            models.UniqueConstraint(
                fields=['ride_request', 'driver'],
                name='unique_rejection_per_driver'
            )
        ]

    def __str__(self):
        return f"Rejection - Request {self.ride_request_id} by Driver {self.driver_id}"


class Payment(models.Model):
    """Settlement record for a completed ride. Written once, never changed."""

    ride = models.OneToOneField(
        Ride,
        on_delete=models.PROTECT,
        related_name='settlement'
    )

    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='payments'
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = 'payments'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"Payment #{self.id} - Ride {self.ride_id} - {self.amount}"
