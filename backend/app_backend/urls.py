from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check),  # Health check endpoint

    # Authentication endpoints (register, login, refresh, me)
    path('api/auth/', include('accounts.urls')),

    # Passenger APIs (request, current, cancel, history)
    path('api/passenger/', include('passengers.urls')),

    # Driver APIs (availability, balance, payments, current ride)
    path('api/driver/', include('drivers.urls')),

    # Ride matching and lifecycle (available, accept, reject, status)
    path('api/rides/', include('rides.urls')),
]
