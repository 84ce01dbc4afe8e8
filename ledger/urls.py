from django.urls import path

from ledger.views import (
    HealthView,
    UserDetailView,
    UserListCreateView,
    UserSearchView,
    UserTransactionsView,
)

# "search" must be matched before the <user_id> routes.
urlpatterns = [
    path("health", HealthView.as_view(), name="health"),
    path("users", UserListCreateView.as_view(), name="user-list"),
    path("users/search", UserSearchView.as_view(), name="user-search"),
    path("users/<str:user_id>", UserDetailView.as_view(), name="user-detail"),
    path(
        "users/<str:user_id>/transactions",
        UserTransactionsView.as_view(),
        name="user-transactions",
    ),
]
