from django.db import models


class TimestampedModel(models.Model):
    """Adds record-creation and last-write times to ledger rows."""

    # createdAt in the API; also the tie-breaker for same-day history.
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
