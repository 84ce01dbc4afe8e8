import uuid
from decimal import Decimal

from django.db import models

from ledger.models.base import TimestampedModel


class User(TimestampedModel):
    """
    A ledger holder with a running, signed balance.

    The balance may go negative: debits beyond the available balance are
    recorded like an informal line of credit. It is only ever changed by
    LedgerService.apply_transaction, under a row lock.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, unique=True)
    balance = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    class Meta(TimestampedModel.Meta):
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} (balance={self.balance})"
