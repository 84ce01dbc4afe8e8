from rest_framework import serializers

from ledger.models import User


class UserSerializer(serializers.ModelSerializer):
    """Read-only serializer for user responses."""

    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = User
        fields = ("id", "name", "balance", "createdAt")
        read_only_fields = fields


class CreateUserSerializer(serializers.Serializer):
    """Validates user creation requests. Trimming and uniqueness live in UserService."""

    name = serializers.CharField(
        allow_blank=True,
        trim_whitespace=False,
        error_messages={"required": "Name is required.", "null": "Name is required."},
    )
