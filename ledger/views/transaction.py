import logging

from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.response import Response

from ledger.exceptions import NotFoundError, ValidationError, error_response
from ledger.serializers import (
    CreateTransactionSerializer,
    TransactionSerializer,
    UserSerializer,
)
from ledger.services import LedgerService

logger = logging.getLogger(__name__)


class UserTransactionsView(ListAPIView):
    """
    GET  /api/users/<id>/transactions — Transaction history, newest date first.
    POST /api/users/<id>/transactions — Apply a credit or debit.

    Request body: {"type": "credit"|"debit", "amount": <positive number>,
                   "date": "YYYY-MM-DD", "description": "<optional>"}
    Note: Debits may take the balance below zero.
    """

    serializer_class = TransactionSerializer

    def get_queryset(self):
        return LedgerService.history(self.kwargs["user_id"])

    def post(self, request, user_id, *args, **kwargs):
        serializer = CreateTransactionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            user, tx = LedgerService.apply_transaction(
                user_id=user_id,
                transaction_type=data["type"],
                amount=data["amount"],
                date=data["date"],
                description=data.get("description"),
            )
        except (ValidationError, NotFoundError) as exc:
            return error_response(exc)

        return Response(
            {
                "user": UserSerializer(user).data,
                "transaction": TransactionSerializer(tx).data,
            },
            status=status.HTTP_201_CREATED,
        )
