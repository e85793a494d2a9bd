# passengers/views/rides.py

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from ..permissions import IsPassenger
from common.request_data import body_object
from rides.serializers import RideRequestSerializer, serialize_ride_or_request
from services.ride_management import (
    create_ride_request,
    get_current_passenger_ride,
    cancel_ride_by_passenger,
)


class PassengerCreateRideRequestView(APIView):
    """
    POST: Passenger creates a ride request.

    {
        "pickup_location": "Connaught Place",
        "drop_location": "India Gate",
        "ride_type": "car",        // bike | car | rickshaw
        "payment": 500
    }
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def post(self, request):
        body = body_object(request)
        result = create_ride_request(
            passenger=request.user,
            pickup_location=body.get("pickup_location"),
            drop_location=body.get("drop_location"),
            ride_type=body.get("ride_type"),
            payment=body.get("payment"),
        )

        return Response({
            "ride_request_id": result.ride_request.id,
            "ride_request": RideRequestSerializer(result.ride_request).data,
            "message": result.message,
        }, status=status.HTTP_201_CREATED)


class PassengerCurrentRideView(APIView):
    """
    GET: Passenger polling endpoint to get current request or ride.
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def get(self, request):
        current = get_current_passenger_ride(request.user)

        if not current:
            return Response({
                "has_active_ride": False,
                "message": "No active ride found"
            })

        data = serialize_ride_or_request(current)
        resp = {
            "has_active_ride": True,
            "ride": data,
            "source": data["source"],
            "status": current.status,
            "driver_assigned": data["source"] == "Ride",
        }

        if data["source"] == "RideRequest":
            resp["message"] = "Waiting for a driver to accept..."
        elif current.status == "in_progress":
            resp["message"] = "Ride in progress."
        else:
            resp["message"] = "Driver is on the way!"

        return Response(resp)


class PassengerCancelRideView(APIView):
    """
    POST: Passenger cancels an open request or an accepted ride.
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def post(self, request, ride_id: int):
        result = cancel_ride_by_passenger(request.user, ride_id)

        cancelled = result.ride if result.ride is not None else result.ride_request
        return Response({
            "success": True,
            "message": result.message,
            "ride_id": ride_id,
            "source": serialize_ride_or_request(cancelled)["source"],
            "status": cancelled.status,
        })
