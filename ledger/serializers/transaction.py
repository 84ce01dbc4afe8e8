from rest_framework import serializers

from ledger.models import Transaction
from ledger.services.ledger import BALANCE_LIMIT, quantize_amount


class TransactionSerializer(serializers.ModelSerializer):
    """Read-only serializer for transaction responses."""

    userId = serializers.UUIDField(source="user_id", read_only=True)
    userName = serializers.CharField(source="user_name", read_only=True)
    type = serializers.CharField(source="transaction_type", read_only=True)
    balanceAfter = serializers.DecimalField(
        source="balance_after", max_digits=14, decimal_places=2, read_only=True
    )
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Transaction
        fields = (
            "id",
            "userId",
            "userName",
            "type",
            "amount",
            "date",
            "description",
            "balanceAfter",
            "createdAt",
        )
        read_only_fields = fields


class CreateTransactionSerializer(serializers.Serializer):
    """Validates credit/debit requests."""

    type = serializers.ChoiceField(
        choices=Transaction.TransactionType.choices,
        error_messages={
            "required": "Type is required.",
            "null": "Type is required.",
            "invalid_choice": "Type must be either credit or debit.",
        },
    )
    # Precision is not enforced here; extra decimals are rounded in validate_amount.
    amount = serializers.DecimalField(
        max_digits=None,
        decimal_places=None,
        error_messages={
            "required": "Amount is required.",
            "null": "Amount is required.",
            "invalid": "Amount must be a positive number.",
        },
    )
    date = serializers.DateField(
        error_messages={
            "required": "Date is required.",
            "null": "Date is required.",
            "invalid": "Date must be a valid YYYY-MM-DD date.",
        },
    )
    description = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=""
    )

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be a positive number.")
        if value >= BALANCE_LIMIT:
            raise serializers.ValidationError("Amount is too large.")

        value = quantize_amount(value)
        if value <= 0:
            raise serializers.ValidationError("Amount must be a positive number.")
        return value
