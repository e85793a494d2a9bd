from django.urls import path
from .views import (
    DriverAvailabilityView,
    DriverBalanceView,
    DriverPaymentsView,
    DriverCurrentRideView,
)

app_name = "drivers"

urlpatterns = [
    path("availability/", DriverAvailabilityView.as_view(), name="driver-availability"),
    path("balance/", DriverBalanceView.as_view(), name="driver-balance"),
    path("payments/", DriverPaymentsView.as_view(), name="driver-payments"),
    path("current-ride/", DriverCurrentRideView.as_view(), name="driver-current-ride"),
]
