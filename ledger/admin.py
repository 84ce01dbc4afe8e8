from django.contrib import admin

from ledger.models import Transaction, User


class BrowseOnlyAdminMixin:
    """Ledger rows change only through the services; the admin just shows them."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        # Deleting a user here would skip UserService.delete and its logging.
        return False


class TransactionInline(BrowseOnlyAdminMixin, admin.TabularInline):
    model = Transaction
    fields = ("date", "transaction_type", "amount", "balance_after", "description")
    readonly_fields = fields
    ordering = ("-date", "-created_at")
    extra = 0


@admin.register(User)
class UserAdmin(BrowseOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("name", "id", "balance", "created_at")
    search_fields = ("name",)
    readonly_fields = ("id", "name", "balance", "created_at", "updated_at")
    inlines = (TransactionInline,)


@admin.register(Transaction)
class TransactionAdmin(BrowseOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "user_name",
        "transaction_type",
        "amount",
        "date",
        "balance_after",
        "created_at",
    )
    list_filter = ("transaction_type", "date")
    search_fields = ("user_name", "user__id", "description")
    readonly_fields = (
        "user",
        "user_name",
        "transaction_type",
        "amount",
        "date",
        "description",
        "balance_after",
        "created_at",
        "updated_at",
    )
