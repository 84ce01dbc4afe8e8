from ledger.views.user import UserDetailView, UserListCreateView, UserSearchView
from ledger.views.transaction import UserTransactionsView
from ledger.views.health import HealthView

__all__ = [
    "UserListCreateView",
    "UserSearchView",
    "UserDetailView",
    "UserTransactionsView",
    "HealthView",
]
