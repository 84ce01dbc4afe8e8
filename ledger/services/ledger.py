import datetime
import logging
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

from django.db import transaction
from django.db.models import F
from django.utils.dateparse import parse_date

from ledger.exceptions import NotFoundError, ValidationError
from ledger.models import Transaction, User
from ledger.services.user import parse_user_id

logger = logging.getLogger(__name__)

AMOUNT_PLACES = 2
CENT = Decimal(1).scaleb(-AMOUNT_PLACES)
# balance and balance_after are DecimalField(max_digits=14, decimal_places=2)
BALANCE_LIMIT = Decimal(10) ** 12


def quantize_amount(value: Decimal) -> Decimal:
    """Round a finite amount to whole cents, half to even."""
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def _clean_type(transaction_type) -> str:
    if transaction_type not in Transaction.TransactionType.values:
        raise ValidationError("Type must be either credit or debit.")
    return transaction_type


def _clean_amount(amount) -> Decimal:
    if amount is None or amount == "" or isinstance(amount, bool):
        raise ValidationError("Amount is required.")

    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Amount must be a positive number.")

    if not value.is_finite() or value <= 0:
        raise ValidationError("Amount must be a positive number.")
    if value >= BALANCE_LIMIT:
        raise ValidationError("Amount is too large.")

    # Sub-cent amounts round to whole cents; 0.004 rounds to nothing.
    value = quantize_amount(value)
    if value <= 0:
        raise ValidationError("Amount must be a positive number.")
    if value >= BALANCE_LIMIT:
        raise ValidationError("Amount is too large.")
    return value


def _clean_date(value) -> datetime.date:
    if value is None or value == "":
        raise ValidationError("Date is required.")
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value

    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError("Date must be a valid YYYY-MM-DD date.")
    return parsed


class LedgerService:
    """
    Applies credits and debits to user balances.

    Every transaction is written together with the balance change it
    produced. The user row is locked with select_for_update() and updated
    with an F() expression, so concurrent transactions for the same user
    are serialized and none of them is lost.
    """

    @staticmethod
    @transaction.atomic
    def apply_transaction(
        user_id, transaction_type, amount, date, description=""
    ) -> tuple[User, Transaction]:
        """
        Apply a credit or debit to the user's balance and record it.

        Inputs are checked in order: type, amount, date, then the user.
        Nothing is written unless all checks pass. Balances may go negative.

        Args:
            user_id: UUID of the target user.
            transaction_type: "credit" or "debit".
            amount: Positive number (or numeric string), rounded to cents.
            date: Business date, a date or a YYYY-MM-DD string.
            description: Optional free text.

        Returns:
            (user, transaction) with the user's refreshed balance.

        Raises:
            ValidationError: If type, amount or date is missing or invalid,
                or the new balance would not fit the balance column.
            NotFoundError: If the user doesn't exist.
        """
        transaction_type = _clean_type(transaction_type)
        amount = _clean_amount(amount)
        date = _clean_date(date)

        pk = parse_user_id(user_id)
        # Lock the user row to prevent concurrent balance modification
        user = User.objects.select_for_update().filter(pk=pk).first() if pk else None
        if user is None:
            logger.warning("Transaction rejected, user not found: user=%s", user_id)
            raise NotFoundError("User not found.")

        delta = amount if transaction_type == Transaction.TransactionType.CREDIT else -amount
        if abs(user.balance + delta) >= BALANCE_LIMIT:
            logger.warning(
                "Transaction rejected, balance out of range: user=%s balance=%s delta=%s",
                user.pk,
                user.balance,
                delta,
            )
            raise ValidationError("Amount is too large for this balance.")

        User.objects.filter(pk=user.pk).update(balance=F("balance") + delta)
        user.refresh_from_db()

        tx = Transaction.objects.create(
            user=user,
            user_name=user.name,
            transaction_type=transaction_type,
            amount=amount,
            date=date,
            description=description or "",
            balance_after=user.balance,
        )

        logger.info(
            "Transaction applied: user=%s type=%s amount=%s new_balance=%s tx=%d",
            user.pk,
            transaction_type,
            amount,
            user.balance,
            tx.id,
        )
        return user, tx

    @staticmethod
    def history(user_id):
        """
        A user's transactions, by business date then creation time, newest first.

        Unknown or malformed ids give an empty result rather than an error.
        """
        pk = parse_user_id(user_id)
        if pk is None:
            return Transaction.objects.none()
        return Transaction.history_for(pk)
