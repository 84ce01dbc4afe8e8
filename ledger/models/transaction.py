from django.db import models

from ledger.models.base import TimestampedModel
from ledger.models.user import User


class Transaction(TimestampedModel):
    """
    An immutable credit or debit applied to a user's balance.

    `amount` is always positive; the direction comes from `transaction_type`.
    `balance_after` snapshots the user's balance right after this entry and
    `user_name` snapshots the user's name; neither is recomputed later.
    """

    class TransactionType(models.TextChoices):
        CREDIT = "credit", "Credit"
        DEBIT = "debit", "Debit"

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="transactions",
    )
    user_name = models.CharField(max_length=255)
    transaction_type = models.CharField(
        max_length=6,
        choices=TransactionType.choices,
    )
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    date = models.DateField(help_text="Business date supplied by the caller.")
    description = models.TextField(blank=True, default="")
    balance_after = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        help_text="User balance immediately after this transaction.",
    )

    class Meta(TimestampedModel.Meta):
        ordering = ["-date", "-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["user", "-date", "-created_at"], name="idx_user_history"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="transaction_amount_positive"
            ),
        ]

    def __str__(self):
        return (
            f"Transaction {self.id} | {self.transaction_type} | "
            f"{self.amount} | {self.date}"
        )

    @property
    def signed_amount(self):
        """Amount with the sign of its effect on the balance."""
        if self.transaction_type == self.TransactionType.DEBIT:
            return -self.amount
        return self.amount

    @classmethod
    def history_for(cls, user_id):
        """Return a user's transactions, newest business date first."""
        return cls.objects.filter(user_id=user_id).order_by(
            "-date", "-created_at", "-id"
        )
