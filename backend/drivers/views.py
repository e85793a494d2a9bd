from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from drivers.permissions import IsDriver
from drivers.serializers import DriverAvailabilitySerializer
from rides.serializers import PaymentSerializer, RideSerializer
from services.ride_management import get_current_driver_ride
from services.settlement import get_balance, list_payments

from drivers import services


class DriverAvailabilityView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        return Response({"is_available": request.user.is_available})

    def put(self, request):
        serializer = DriverAvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        is_available = serializer.validated_data["is_available"]

        services.update_driver_availability(request.user, is_available)

        return Response({
            "message": "Availability updated",
            "is_available": is_available
        })


class DriverBalanceView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        return Response({"balance": get_balance(request.user)})


class DriverPaymentsView(APIView):
    """GET: Payment records for the driver, newest first."""
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        payments = list_payments(request.user)
        serializer = PaymentSerializer(payments, many=True)
        return Response({"count": len(payments), "payments": serializer.data})


class DriverCurrentRideView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        ride = get_current_driver_ride(request.user)
        if not ride:
            return Response({"has_active_ride": False, "message": "No active ride"})

        return Response({"has_active_ride": True, "ride": RideSerializer(ride).data})
