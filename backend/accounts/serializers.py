from rest_framework import serializers

from .directory import InvalidCredentialsError, verify_credentials
from .models import User


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "role",
            "phone_number",
            "is_available",
            "balance",
        ]
        read_only_fields = fields


class LoginSerializer(serializers.Serializer):
    """Accepts a username or an email as the identifier."""
    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, data):
        try:
            return verify_credentials(data["username"], data["password"])
        except InvalidCredentialsError:
            raise serializers.ValidationError("Invalid username or password")


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)
    role = serializers.ChoiceField(choices=User.Role.choices)

    class Meta:
        model = User
        fields = ['username', 'password', 'email', 'role', 'phone_number']
        extra_kwargs = {'phone_number': {'required': False}}

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value

    def create(self, validated_data):
        role = validated_data['role']
        return User.objects.create_user(
            username=validated_data['username'],
            email=validated_data['email'],
            password=validated_data['password'],
            role=role,
            phone_number=validated_data.get('phone_number', ''),
            # Drivers come online as soon as they register
            is_available=role == User.Role.DRIVER,
        )
