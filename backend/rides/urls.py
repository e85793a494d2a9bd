from django.urls import path
from . import views

app_name = 'rides'

urlpatterns = [
    # Driver Ride Actions
    path('available/', views.available_ride_requests, name='available-rides'),
    path('<int:ride_request_id>/accept/', views.accept_ride, name='accept-ride'),
    path('<int:ride_request_id>/reject/', views.reject_ride, name='reject-ride'),
    path('<int:ride_id>/status/', views.update_status, name='update-status'),
]
