from rest_framework import serializers


class DriverAvailabilitySerializer(serializers.Serializer):
    """
    Serializer for updating driver availability.
    """
    is_available = serializers.BooleanField()
