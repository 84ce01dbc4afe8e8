from ledger.serializers.user import CreateUserSerializer, UserSerializer
from ledger.serializers.transaction import (
    CreateTransactionSerializer,
    TransactionSerializer,
)

__all__ = [
    "UserSerializer",
    "CreateUserSerializer",
    "TransactionSerializer",
    "CreateTransactionSerializer",
]
