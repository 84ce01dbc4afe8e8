import logging
import uuid

from django.db import IntegrityError, transaction

from ledger.exceptions import ConflictError, NotFoundError, ValidationError
from ledger.models import User

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = User._meta.get_field("name").max_length


def parse_user_id(value):
    """Return `value` as a UUID, or None if it cannot be one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


class UserService:
    """
    Registry of ledger users: creation, lookup, search and deletion.

    Names are trimmed before they are stored or compared. Deletion removes the
    user's transactions in the same database transaction as the user row.
    """

    @staticmethod
    def create(name) -> User:
        """
        Create a user with a zero balance.

        Raises:
            ValidationError: If the name is missing, blank or too long.
            ConflictError: If a user with the same trimmed name exists.
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Name is required.")

        name = name.strip()
        if len(name) > NAME_MAX_LENGTH:
            raise ValidationError(
                f"Name must be at most {NAME_MAX_LENGTH} characters."
            )

        if User.objects.filter(name=name).exists():
            logger.warning("Rejected duplicate user name: name=%r", name)
            raise ConflictError("User already exists.")

        try:
            with transaction.atomic():
                user = User.objects.create(name=name)
        except IntegrityError:
            # Lost a race with a concurrent create of the same name.
            logger.warning("Rejected duplicate user name on insert: name=%r", name)
            raise ConflictError("User already exists.")

        logger.info("User created: id=%s name=%r", user.id, user.name)
        return user

    @staticmethod
    def get(user_id) -> User:
        """
        Raises:
            NotFoundError: If no user has this id (including malformed ids).
        """
        pk = parse_user_id(user_id)
        user = User.objects.filter(pk=pk).first() if pk else None
        if user is None:
            raise NotFoundError("User not found.")
        return user

    @staticmethod
    def list_all():
        """All users, sorted by name."""
        return User.objects.order_by("name")

    @staticmethod
    def search(query):
        """Users whose name contains `query`, ignoring case. No query, no results."""
        if not query:
            return User.objects.none()
        if query.isascii():
            return User.objects.filter(name__icontains=query).order_by("name")

        # SQLite's LIKE only folds ASCII case, so match non-ASCII queries here.
        needle = query.casefold()
        return [
            user
            for user in User.objects.order_by("name")
            if needle in user.name.casefold()
        ]

    @staticmethod
    @transaction.atomic
    def delete(user_id) -> int:
        """
        Delete a user together with all of its transactions.

        Returns:
            The number of transactions removed.

        Raises:
            NotFoundError: If the user doesn't exist.
        """
        pk = parse_user_id(user_id)
        user = User.objects.select_for_update().filter(pk=pk).first() if pk else None
        if user is None:
            raise NotFoundError("User not found.")

        _, deleted = user.delete()
        removed = deleted.get("ledger.Transaction", 0)

        logger.info(
            "User deleted: id=%s name=%r transactions_removed=%d",
            pk,
            user.name,
            removed,
        )
        return removed
