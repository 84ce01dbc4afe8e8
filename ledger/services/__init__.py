from ledger.services.user import UserService
from ledger.services.ledger import LedgerService

__all__ = [
    "UserService",
    "LedgerService",
]
