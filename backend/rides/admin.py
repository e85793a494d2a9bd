"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import RideRequest, Ride, RideRejection, Payment


class ServiceManagedAdmin(admin.ModelAdmin):
    """
    View-only admin. These rows change only through the ride services, which
    enforce the transition table and the one-payment-per-ride rule.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(RideRequest)
class RideRequestAdmin(ServiceManagedAdmin):
    """Ride Request admin"""
    list_display = ['id', 'passenger', 'ride_type', 'payment', 'status', 'is_active', 'created_at']
    list_filter = ['status', 'ride_type', 'is_active']
    search_fields = ['passenger__username', 'pickup_location', 'drop_location']
    date_hierarchy = 'created_at'


@admin.register(Ride)
class RideAdmin(ServiceManagedAdmin):
    list_display = ['id', 'passenger', 'driver', 'ride_type', 'payment', 'status', 'is_active', 'created_at']
    list_filter = ['status', 'ride_type', 'is_active']
    search_fields = ['passenger__username', 'driver__username', 'pickup_location']
    date_hierarchy = 'created_at'


@admin.register(RideRejection)
class RideRejectionAdmin(ServiceManagedAdmin):
    list_display = ("ride_request_id", "driver", "created_at")
    search_fields = ("driver__username",)


@admin.register(Payment)
class PaymentAdmin(ServiceManagedAdmin):
    list_display = ("id", "ride", "driver", "amount", "created_at")
    search_fields = ("driver__username", "ride__id")
