from rest_framework import serializers

from .models import RideRequest, Ride, Payment


class RideRequestSerializer(serializers.ModelSerializer):
    """Serializer for open and cancelled ride requests"""
    source = serializers.SerializerMethodField()

    class Meta:
        model = RideRequest
        fields = ['id', 'passenger_id', 'pickup_location', 'drop_location', 'ride_type',
                  'payment', 'status', 'is_active', 'created_at', 'source']
        read_only_fields = fields

    def get_source(self, obj):
        return 'RideRequest'


class RideSerializer(serializers.ModelSerializer):
    """Serializer for assigned rides"""
    source = serializers.SerializerMethodField()

    class Meta:
        model = Ride
        fields = ['id', 'passenger_id', 'driver_id', 'pickup_location', 'drop_location',
                  'ride_type', 'payment', 'status', 'is_active', 'created_at', 'updated_at', 'source']
        read_only_fields = fields

    def get_source(self, obj):
        return 'Ride'


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = ['id', 'ride_id', 'amount', 'created_at']
        read_only_fields = fields


def serialize_ride_or_request(obj):
    """Serialize a RideRequest or Ride, tagged with its source."""
    if obj is None:
        return None
    if isinstance(obj, RideRequest):
        return RideRequestSerializer(obj).data
    return RideSerializer(obj).data
