from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from ..permissions import IsPassenger
from rides.serializers import serialize_ride_or_request
from services.ride_management import get_passenger_ride_history


class PassengerRideHistoryView(APIView):
    """
    GET: Retrieve passenger ride history (cancelled requests, completed and cancelled rides)
    """
    permission_classes = [IsAuthenticated, IsPassenger]

    def get(self, request):
        history = [serialize_ride_or_request(item) for item in get_passenger_ride_history(request.user)]
        return Response({"count": len(history), "rides": history})
