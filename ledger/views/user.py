import logging

from rest_framework import status
from rest_framework.generics import ListAPIView
from rest_framework.response import Response
from rest_framework.views import APIView

from ledger.exceptions import ConflictError, NotFoundError, ValidationError, error_response
from ledger.serializers import CreateUserSerializer, UserSerializer
from ledger.services import UserService

logger = logging.getLogger(__name__)


class UserListCreateView(ListAPIView):
    """
    GET  /api/users — List every user, sorted by name.
    POST /api/users — Create a user.

    Request body: {"name": "<non-empty string>"}
    """

    serializer_class = UserSerializer

    def get_queryset(self):
        return UserService.list_all()

    def post(self, request, *args, **kwargs):
        serializer = CreateUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user = UserService.create(serializer.validated_data["name"])
        except (ValidationError, ConflictError) as exc:
            return error_response(exc)

        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class UserSearchView(ListAPIView):
    """
    GET /api/users/search?q=<text> — Case-insensitive substring search on names.

    A missing or empty `q` returns an empty list.
    """

    serializer_class = UserSerializer

    def get_queryset(self):
        return UserService.search(self.request.query_params.get("q", ""))


class UserDetailView(APIView):
    """
    GET    /api/users/<id> — Retrieve a user.
    DELETE /api/users/<id> — Delete a user and all of its transactions.
    """

    def get(self, request, user_id, *args, **kwargs):
        try:
            user = UserService.get(user_id)
        except NotFoundError as exc:
            return error_response(exc)

        return Response(UserSerializer(user).data)

    def delete(self, request, user_id, *args, **kwargs):
        try:
            removed = UserService.delete(user_id)
        except NotFoundError as exc:
            return error_response(exc)

        return Response(
            {
                "message": "User deleted successfully.",
                "deletedTransactions": removed,
            },
            status=status.HTTP_200_OK,
        )
