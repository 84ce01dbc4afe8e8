from ledger.models.user import User
from ledger.models.transaction import Transaction

__all__ = [
    "User",
    "Transaction",
]
