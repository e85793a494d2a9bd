from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from common.request_data import body_object
from drivers.permissions import IsDriver
from .serializers import PaymentSerializer, RideRequestSerializer, RideSerializer

from services.matching import list_open_requests, accept_ride_request, reject_ride_request
from services.ride_management import update_ride_status


# ==================== Driver Ride APIs ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDriver])
def available_ride_requests(request):
    """Open ride requests this driver has not rejected, oldest first."""
    ride_requests = list_open_requests(request.user)
    serializer = RideRequestSerializer(ride_requests, many=True)
    return Response({'count': len(ride_requests), 'ride_requests': serializer.data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def accept_ride(request, ride_request_id):
    """Accept an open ride request. The request becomes a ride."""
    result = accept_ride_request(request.user, ride_request_id)
    return Response({
        'success': True,
        'message': result.message,
        'ride_id': result.ride.id,
        'ride': RideSerializer(result.ride).data,
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def reject_ride(request, ride_request_id):
    """Hide an open ride request from this driver. Other drivers still see it."""
    result = reject_ride_request(request.user, ride_request_id)
    return Response({
        'success': True,
        'message': result.message,
        'ride_request_id': ride_request_id,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def update_status(request, ride_id):
    """
    Move an assigned ride forward - CALLED BY DRIVER

    Body: {"status": "in_progress" | "completed" | "cancelled"}
    Completing the ride records the payment and credits the driver.
    """
    body = body_object(request)
    result = update_ride_status(request.user, ride_id, body.get('status'))

    response_data = {
        'success': True,
        'message': result.message,
        'ride': RideSerializer(result.ride).data,
    }
    if result.payment is not None:
        response_data['payment'] = PaymentSerializer(result.payment).data
        response_data['amount'] = result.payment.amount

    return Response(response_data)
