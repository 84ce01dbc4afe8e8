import datetime
import logging
import os
import tempfile
import threading
import uuid
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pydantic
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError, connection
from django.db.utils import OperationalError
from django.test import SimpleTestCase, TestCase, TransactionTestCase
from rest_framework.test import APIClient

from config.env import EnvSettings
from ledger.exceptions import ConflictError, NotFoundError, ValidationError
from ledger.models import Transaction, User
from ledger.services import LedgerService, UserService

# ============================================================
# Model Tests
# ============================================================


class UserModelTest(TestCase):
    def test_create_user(self):
        user = User.objects.create(name="Alice")
        self.assertIsInstance(user.id, uuid.UUID)
        self.assertEqual(user.balance, 0)
        self.assertIsNotNone(user.created_at)

    def test_user_str(self):
        user = User.objects.create(name="Alice")
        self.assertIn("Alice", str(user))

    def test_default_ordering_is_by_name(self):
        User.objects.create(name="carol")
        User.objects.create(name="Alice")
        User.objects.create(name="bob")
        self.assertEqual(
            [u.name for u in User.objects.all()], ["Alice", "bob", "carol"]
        )


class TransactionModelTest(TestCase):
    def setUp(self):
        self.user = User.objects.create(name="Alice")

    def _create(self, transaction_type, amount, date):
        return Transaction.objects.create(
            user=self.user,
            user_name=self.user.name,
            transaction_type=transaction_type,
            amount=Decimal(amount),
            date=date,
            balance_after=Decimal("0"),
        )

    def test_signed_amount(self):
        credit = self._create(
            Transaction.TransactionType.CREDIT, "10.50", datetime.date(2024, 1, 1)
        )
        debit = self._create(
            Transaction.TransactionType.DEBIT, "4.25", datetime.date(2024, 1, 1)
        )
        self.assertEqual(credit.signed_amount, Decimal("10.50"))
        self.assertEqual(debit.signed_amount, Decimal("-4.25"))

    def test_transaction_str(self):
        tx = self._create(
            Transaction.TransactionType.DEBIT, "500", datetime.date(2024, 1, 1)
        )
        self.assertIn("debit", str(tx))
        self.assertIn("500", str(tx))

    def test_history_for_orders_by_date_then_creation(self):
        first = self._create(
            Transaction.TransactionType.CREDIT, "1", datetime.date(2024, 1, 2)
        )
        second = self._create(
            Transaction.TransactionType.CREDIT, "2", datetime.date(2024, 1, 2)
        )
        older = self._create(
            Transaction.TransactionType.CREDIT, "3", datetime.date(2024, 1, 1)
        )

        history = list(Transaction.history_for(self.user.id))
        self.assertEqual(
            [tx.id for tx in history], [second.id, first.id, older.id]
        )


# ============================================================
# Service Tests
# ============================================================


class UserServiceTest(TestCase):
    def test_create_trims_name(self):
        user = UserService.create("  Alice  ")
        self.assertEqual(user.name, "Alice")
        self.assertEqual(user.balance, 0)

    def test_create_blank_name_raises(self):
        for name in ("", "   ", None):
            with self.assertRaises(ValidationError):
                UserService.create(name)
        self.assertEqual(User.objects.count(), 0)

    def test_create_duplicate_after_trim_raises(self):
        UserService.create("Alice")
        for name in ("Alice", " Alice", "Alice  ", "\tAlice\n"):
            with self.assertRaises(ConflictError):
                UserService.create(name)
        self.assertEqual(User.objects.count(), 1)

    def test_create_duplicate_check_is_case_sensitive(self):
        UserService.create("Alice")
        user = UserService.create("alice")
        self.assertEqual(user.name, "alice")

    def test_create_name_too_long_raises(self):
        with self.assertRaises(ValidationError):
            UserService.create("x" * 256)

    def test_get(self):
        user = UserService.create("Alice")
        self.assertEqual(UserService.get(user.id), user)
        self.assertEqual(UserService.get(str(user.id)), user)

    def test_get_nonexistent_raises(self):
        with self.assertRaises(NotFoundError):
            UserService.get(uuid.uuid4())

    def test_get_malformed_id_raises(self):
        with self.assertRaises(NotFoundError):
            UserService.get("not-a-uuid")

    def test_list_all_sorted_by_name(self):
        for name in ("Charlie", "Alice", "Bob"):
            UserService.create(name)
        self.assertEqual(
            [u.name for u in UserService.list_all()], ["Alice", "Bob", "Charlie"]
        )

    def test_search_case_insensitive_substring(self):
        for name in ("Maria", "Mario", "Amar", "Bob"):
            UserService.create(name)
        self.assertEqual(
            [u.name for u in UserService.search("MAR")], ["Amar", "Maria", "Mario"]
        )

    def test_search_folds_non_ascii_case(self):
        for name in ("Élodie", "Zoë", "Elodie"):
            UserService.create(name)
        self.assertEqual([u.name for u in UserService.search("élodie")], ["Élodie"])
        self.assertEqual([u.name for u in UserService.search("ZOË")], ["Zoë"])

    def test_search_empty_query_returns_nothing(self):
        UserService.create("Alice")
        self.assertEqual(list(UserService.search("")), [])
        self.assertEqual(list(UserService.search(None)), [])
        self.assertEqual(UserService.list_all().count(), 1)

    def test_delete_cascades_to_transactions(self):
        user = UserService.create("Alice")
        other = UserService.create("Bob")
        LedgerService.apply_transaction(user.id, "credit", 100, "2024-01-01")
        LedgerService.apply_transaction(user.id, "debit", 30, "2024-01-02")
        LedgerService.apply_transaction(other.id, "credit", 5, "2024-01-01")

        removed = UserService.delete(user.id)

        self.assertEqual(removed, 2)
        self.assertFalse(User.objects.filter(pk=user.id).exists())
        self.assertEqual(list(LedgerService.history(user.id)), [])
        self.assertEqual(Transaction.objects.filter(user=other).count(), 1)

    def test_delete_nonexistent_raises(self):
        with self.assertRaises(NotFoundError):
            UserService.delete(uuid.uuid4())
        with self.assertRaises(NotFoundError):
            UserService.delete("garbage")


class LedgerServiceTest(TransactionTestCase):
    def setUp(self):
        self.user = User.objects.create(name="Alice")

    def test_credit_success(self):
        user, tx = LedgerService.apply_transaction(
            self.user.id, "credit", Decimal("500"), datetime.date(2024, 6, 1)
        )

        self.user.refresh_from_db()
        self.assertEqual(self.user.balance, Decimal("500"))
        self.assertEqual(user.balance, Decimal("500"))
        self.assertEqual(tx.balance_after, Decimal("500"))
        self.assertEqual(tx.transaction_type, Transaction.TransactionType.CREDIT)
        self.assertEqual(tx.amount, Decimal("500"))
        self.assertEqual(tx.user_name, "Alice")
        self.assertEqual(tx.date, datetime.date(2024, 6, 1))
        self.assertEqual(tx.description, "")

    def test_debit_success(self):
        LedgerService.apply_transaction(self.user.id, "credit", 100, "2024-06-01")
        user, tx = LedgerService.apply_transaction(
            self.user.id, "debit", "40.25", "2024-06-02", description="groceries"
        )

        self.assertEqual(user.balance, Decimal("59.75"))
        self.assertEqual(tx.balance_after, Decimal("59.75"))
        self.assertEqual(tx.description, "groceries")

    def test_example_scenario_allows_negative_balance(self):
        user, tx = LedgerService.apply_transaction(
            self.user.id, "credit", 500, "2024-06-01"
        )
        self.assertEqual((user.balance, tx.balance_after), (500, 500))

        user, tx = LedgerService.apply_transaction(
            self.user.id, "debit", 200, "2024-06-02"
        )
        self.assertEqual((user.balance, tx.balance_after), (300, 300))

        user, tx = LedgerService.apply_transaction(
            self.user.id, "debit", 1000, "2024-06-03"
        )
        self.assertEqual((user.balance, tx.balance_after), (-700, -700))

        self.user.refresh_from_db()
        self.assertEqual(self.user.balance, Decimal("-700"))

    def test_replay_sums_to_final_balance(self):
        entries = [
            ("credit", "120.10"),
            ("debit", "20.05"),
            ("credit", "0.95"),
            ("debit", "300"),
            ("credit", "45.50"),
        ]
        for i, (tx_type, amount) in enumerate(entries, start=1):
            LedgerService.apply_transaction(
                self.user.id, tx_type, amount, datetime.date(2024, 1, i)
            )

        self.user.refresh_from_db()
        replayed = sum(tx.signed_amount for tx in Transaction.objects.filter(user=self.user))
        self.assertEqual(self.user.balance, replayed)
        self.assertEqual(self.user.balance, Decimal("-153.50"))

    def test_balance_after_matches_running_balance(self):
        for amount in (10, 20, 30):
            LedgerService.apply_transaction(self.user.id, "credit", amount, "2024-01-01")

        snapshots = sorted(
            Transaction.objects.filter(user=self.user).values_list(
                "balance_after", flat=True
            )
        )
        self.assertEqual(snapshots, [Decimal("10"), Decimal("30"), Decimal("60")])

    def test_stale_user_instance_does_not_lose_updates(self):
        stale = User.objects.get(pk=self.user.pk)
        LedgerService.apply_transaction(self.user.id, "credit", 100, "2024-01-01")
        user, tx = LedgerService.apply_transaction(stale.id, "credit", 50, "2024-01-01")
        self.assertEqual(user.balance, Decimal("150"))
        self.assertEqual(tx.balance_after, Decimal("150"))

    def test_zero_and_negative_amounts_raise_without_side_effects(self):
        for amount in (0, -5, "0", "-5", Decimal("0.00")):
            with self.assertRaises(ValidationError):
                LedgerService.apply_transaction(self.user.id, "credit", amount, "2024-01-01")

        self.user.refresh_from_db()
        self.assertEqual(self.user.balance, 0)
        self.assertEqual(Transaction.objects.count(), 0)

    def test_invalid_amounts_raise(self):
        for amount in (None, "", "abc", "NaN", "Infinity", "0.004", True, 10**13, "1e30"):
            with self.assertRaises(ValidationError):
                LedgerService.apply_transaction(self.user.id, "credit", amount, "2024-01-01")

    def test_sub_cent_amounts_are_rounded_half_even(self):
        cases = [
            ("10.555", Decimal("10.56")),
            ("10.545", Decimal("10.54")),
            (0.30000000000000004, Decimal("0.30")),
        ]
        expected_balance = Decimal("0")
        for amount, rounded in cases:
            expected_balance += rounded
            user, tx = LedgerService.apply_transaction(
                self.user.id, "credit", amount, "2024-01-01"
            )
            self.assertEqual(tx.amount, rounded)
            self.assertEqual(tx.balance_after, expected_balance)
            self.assertEqual(user.balance, expected_balance)

        tx.refresh_from_db()
        self.assertEqual(tx.amount, Decimal("0.30"))

    def test_balance_overflow_raises_without_side_effects(self):
        LedgerService.apply_transaction(self.user.id, "credit", "600000000000", "2024-01-01")

        with self.assertRaises(ValidationError):
            LedgerService.apply_transaction(
                self.user.id, "credit", "600000000000", "2024-01-02"
            )

        self.user.refresh_from_db()
        self.assertEqual(self.user.balance, Decimal("600000000000"))
        self.assertEqual(Transaction.objects.count(), 1)

    def test_negative_balance_overflow_raises(self):
        LedgerService.apply_transaction(self.user.id, "debit", "999999999999", "2024-01-01")

        with self.assertRaises(ValidationError):
            LedgerService.apply_transaction(self.user.id, "debit", "1", "2024-01-02")

        self.user.refresh_from_db()
        self.assertEqual(self.user.balance, Decimal("-999999999999"))

    def test_invalid_type_raises(self):
        for tx_type in ("transfer", "CREDIT", "", None):
            with self.assertRaises(ValidationError):
                LedgerService.apply_transaction(self.user.id, tx_type, 10, "2024-01-01")
        self.assertEqual(Transaction.objects.count(), 0)

    def test_missing_or_invalid_date_raises(self):
        for date in (None, "", "yesterday", "2024-02-30"):
            with self.assertRaises(ValidationError):
                LedgerService.apply_transaction(self.user.id, "credit", 10, date)

    def test_datetime_date_is_truncated(self):
        _, tx = LedgerService.apply_transaction(
            self.user.id, "credit", 10, datetime.datetime(2024, 3, 4, 15, 30)
        )
        self.assertEqual(tx.date, datetime.date(2024, 3, 4))

    def test_nonexistent_user_raises(self):
        with self.assertRaises(NotFoundError):
            LedgerService.apply_transaction(uuid.uuid4(), "credit", 10, "2024-01-01")
        with self.assertRaises(NotFoundError):
            LedgerService.apply_transaction("bogus", "credit", 10, "2024-01-01")

    def test_validation_precedes_user_lookup(self):
        with self.assertRaises(ValidationError):
            LedgerService.apply_transaction(uuid.uuid4(), "transfer", 10, "2024-01-01")
        with self.assertRaises(ValidationError):
            LedgerService.apply_transaction(uuid.uuid4(), "credit", 0, "2024-01-01")
        with self.assertRaises(ValidationError):
            LedgerService.apply_transaction(uuid.uuid4(), "credit", 10, None)

    def test_user_name_is_a_snapshot(self):
        _, tx = LedgerService.apply_transaction(self.user.id, "credit", 10, "2024-01-01")
        User.objects.filter(pk=self.user.pk).update(name="Alicia")
        tx.refresh_from_db()
        self.assertEqual(tx.user_name, "Alice")

    def test_history_sorted_by_date_desc(self):
        for date in ("2024-01-01", "2024-01-03", "2024-01-02"):
            LedgerService.apply_transaction(self.user.id, "credit", 1, date)

        dates = [tx.date.isoformat() for tx in LedgerService.history(self.user.id)]
        self.assertEqual(dates, ["2024-01-03", "2024-01-02", "2024-01-01"])

    def test_history_same_day_newest_first(self):
        _, first = LedgerService.apply_transaction(self.user.id, "credit", 1, "2024-01-01")
        _, second = LedgerService.apply_transaction(self.user.id, "credit", 2, "2024-01-01")

        history = list(LedgerService.history(self.user.id))
        self.assertEqual([tx.id for tx in history], [second.id, first.id])

    def test_history_unknown_user_is_empty(self):
        self.assertEqual(list(LedgerService.history(uuid.uuid4())), [])
        self.assertEqual(list(LedgerService.history("not-a-uuid")), [])


class ConcurrentTransactionTest(TransactionTestCase):
    """Parallel credits against one user, each thread on its own connection."""

    THREADS = 8

    def setUp(self):
        self.user = User.objects.create(name="Alice")

    def test_parallel_credits_are_all_applied(self):
        barrier = threading.Barrier(self.THREADS)
        errors = []

        def credit():
            try:
                barrier.wait()
                LedgerService.apply_transaction(self.user.id, "credit", 1, "2024-01-01")
            except Exception as exc:
                errors.append(exc)
            finally:
                connection.close()

        threads = [threading.Thread(target=credit) for _ in range(self.THREADS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        self.user.refresh_from_db()
        self.assertEqual(self.user.balance, Decimal(self.THREADS))

        snapshots = sorted(
            Transaction.objects.filter(user=self.user).values_list(
                "balance_after", flat=True
            )
        )
        self.assertEqual(snapshots, [Decimal(i) for i in range(1, self.THREADS + 1)])


# ============================================================
# API Tests
# ============================================================


class UserAPITest(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_list_users_sorted(self):
        for name in ("Charlie", "Alice", "Bob"):
            User.objects.create(name=name)

        response = self.client.get("/api/users")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([u["name"] for u in response.data], ["Alice", "Bob", "Charlie"])

    def test_create_user(self):
        response = self.client.post("/api/users", {"name": "  Alice "}, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["name"], "Alice")
        self.assertEqual(response.data["balance"], 0)
        self.assertEqual(set(response.data), {"id", "name", "balance", "createdAt"})

    def test_create_user_blank_name(self):
        response = self.client.post("/api/users", {"name": "   "}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Name is required.")

    def test_create_user_missing_name(self):
        response = self.client.post("/api/users", {}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Name is required.")
        self.assertIn("name", response.data["fields"])

    def test_create_duplicate_user(self):
        User.objects.create(name="Alice")
        response = self.client.post("/api/users", {"name": "Alice "}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "User already exists.")

    def test_search_users(self):
        for name in ("Alice", "Malik", "Bob"):
            User.objects.create(name=name)

        response = self.client.get("/api/users/search", {"q": "LI"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([u["name"] for u in response.data], ["Alice", "Malik"])

    def test_search_without_query_is_empty(self):
        User.objects.create(name="Alice")

        self.assertEqual(self.client.get("/api/users/search").data, [])
        self.assertEqual(self.client.get("/api/users/search", {"q": ""}).data, [])

    def test_retrieve_user(self):
        user = User.objects.create(name="Alice")
        response = self.client.get(f"/api/users/{user.id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["id"], str(user.id))

    def test_retrieve_nonexistent_user(self):
        response = self.client.get(f"/api/users/{uuid.uuid4()}")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"], "User not found.")

    def test_retrieve_malformed_id(self):
        response = self.client.get("/api/users/12345")
        self.assertEqual(response.status_code, 404)

    def test_delete_user(self):
        user = User.objects.create(name="Alice")
        LedgerService.apply_transaction(user.id, "credit", 10, "2024-01-01")

        response = self.client.delete(f"/api/users/{user.id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["deletedTransactions"], 1)

        self.assertEqual(self.client.get(f"/api/users/{user.id}").status_code, 404)
        history = self.client.get(f"/api/users/{user.id}/transactions")
        self.assertEqual(history.status_code, 200)
        self.assertEqual(history.data, [])

    def test_delete_nonexistent_user(self):
        response = self.client.delete(f"/api/users/{uuid.uuid4()}")
        self.assertEqual(response.status_code, 404)

    @patch("ledger.views.user.UserService.list_all")
    def test_storage_failure_returns_503(self, mock_list_all):
        mock_list_all.side_effect = DatabaseError("connection refused")

        with self.assertLogs("ledger.exceptions", level="ERROR"):
            response = self.client.get("/api/users")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["error"], "Storage is unavailable.")


class TransactionAPITest(TransactionTestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create(name="Alice")
        self.url = f"/api/users/{self.user.id}/transactions"

    def _post(self, payload, url=None):
        return self.client.post(url or self.url, payload, format="json")

    def test_apply_transaction(self):
        response = self._post(
            {"type": "credit", "amount": 500, "date": "2024-06-01", "description": "salary"}
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["user"]["balance"], 500)

        tx = response.data["transaction"]
        self.assertEqual(
            set(tx),
            {
                "id",
                "userId",
                "userName",
                "type",
                "amount",
                "date",
                "description",
                "balanceAfter",
                "createdAt",
            },
        )
        self.assertEqual(tx["userId"], str(self.user.id))
        self.assertEqual(tx["userName"], "Alice")
        self.assertEqual(tx["type"], "credit")
        self.assertEqual(tx["amount"], 500)
        self.assertEqual(tx["date"], "2024-06-01")
        self.assertEqual(tx["description"], "salary")
        self.assertEqual(tx["balanceAfter"], 500)

    def test_example_scenario(self):
        steps = [
            ("credit", 500, "2024-06-01", 500),
            ("debit", 200, "2024-06-02", 300),
            ("debit", 1000, "2024-06-03", -700),
        ]
        for tx_type, amount, date, expected in steps:
            response = self._post({"type": tx_type, "amount": amount, "date": date})
            self.assertEqual(response.status_code, 201)
            self.assertEqual(response.data["user"]["balance"], expected)
            self.assertEqual(response.data["transaction"]["balanceAfter"], expected)

    def test_amount_as_numeric_string(self):
        response = self._post({"type": "credit", "amount": "12.50", "date": "2024-06-01"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["user"]["balance"], Decimal("12.50"))

    def test_monetary_values_are_json_numbers(self):
        self._post({"type": "debit", "amount": "7.25", "date": "2024-06-01"})
        response = self.client.get(self.url)
        self.assertIn(b'"amount":7.25', response.content)
        self.assertIn(b'"balanceAfter":-7.25', response.content)

    def test_zero_and_negative_amount_rejected(self):
        for amount in (0, -5):
            response = self._post({"type": "credit", "amount": amount, "date": "2024-06-01"})
            self.assertEqual(response.status_code, 400)
            self.assertIn("error", response.data)

        self.user.refresh_from_db()
        self.assertEqual(self.user.balance, 0)
        self.assertEqual(Transaction.objects.count(), 0)

    def test_non_numeric_amount_rejected(self):
        response = self._post({"type": "credit", "amount": "lots", "date": "2024-06-01"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Amount must be a positive number.")

    def test_invalid_type_rejected(self):
        response = self._post({"type": "transfer", "amount": 10, "date": "2024-06-01"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Type must be either credit or debit.")

    def test_missing_fields_rejected(self):
        cases = [
            ({"amount": 10, "date": "2024-06-01"}, "Type is required."),
            ({"type": "credit", "date": "2024-06-01"}, "Amount is required."),
            ({"type": "credit", "amount": 10}, "Date is required."),
        ]
        for payload, message in cases:
            response = self._post(payload)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.data["error"], message)

    def test_nonexistent_user(self):
        response = self._post(
            {"type": "credit", "amount": 10, "date": "2024-06-01"},
            url=f"/api/users/{uuid.uuid4()}/transactions",
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"], "User not found.")

    def test_list_transactions_sorted(self):
        for date in ("2024-01-01", "2024-01-03", "2024-01-02"):
            self._post({"type": "credit", "amount": 1, "date": date})

        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [tx["date"] for tx in response.data],
            ["2024-01-03", "2024-01-02", "2024-01-01"],
        )

    def test_sub_cent_float_amount_is_rounded(self):
        response = self._post(
            {"type": "credit", "amount": 0.30000000000000004, "date": "2024-06-01"}
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["transaction"]["amount"], Decimal("0.30"))
        self.assertEqual(response.data["transaction"]["balanceAfter"], Decimal("0.30"))

    def test_amount_rounding_to_zero_rejected(self):
        response = self._post({"type": "credit", "amount": "0.004", "date": "2024-06-01"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Amount must be a positive number.")

    def test_balance_overflow_rejected(self):
        payload = {"type": "credit", "amount": "600000000000", "date": "2024-01-01"}
        self.assertEqual(self._post(payload).status_code, 201)

        response = self._post(payload)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response["Content-Type"], "application/json")
        self.assertEqual(response.data["error"], "Amount is too large for this balance.")

        self.user.refresh_from_db()
        self.assertEqual(self.user.balance, Decimal("600000000000"))
        self.assertEqual(Transaction.objects.count(), 1)

    def test_oversized_amount_rejected(self):
        response = self._post({"type": "credit", "amount": "1e15", "date": "2024-01-01"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Amount is too large.")

    def test_list_transactions_unknown_user(self):
        response = self.client.get(f"/api/users/{uuid.uuid4()}/transactions")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, [])


class HealthAPITest(TestCase):
    def test_health(self):
        response = APIClient().get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "healthy")
        self.assertTrue(response.data["database"])

    @patch("ledger.views.health.connections")
    def test_health_degraded_when_database_unreachable(self, mock_connections):
        mock_connections.__getitem__.return_value.cursor.side_effect = OperationalError(
            "unable to open database file"
        )

        with self.assertLogs("ledger.views.health", level="ERROR"):
            response = APIClient().get("/api/health")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["status"], "degraded")
        self.assertFalse(response.data["database"])


class RequestLoggingMiddlewareTest(TestCase):
    def test_logs_request_and_response(self):
        client = APIClient()
        with self.assertLogs("ledger.middleware", level=logging.INFO) as logs:
            client.post("/api/users", {"name": "Alice"}, format="json")

        output = "\n".join(logs.output)
        self.assertIn("API Request: POST /api/users", output)
        self.assertIn('Alice', output)
        self.assertIn("Status: 201", output)


class BrowseOnlyAdminTest(TestCase):
    def setUp(self):
        admin_user = get_user_model().objects.create_superuser(
            "admin", "admin@example.com", "secret"
        )
        self.client.force_login(admin_user)
        self.user = User.objects.create(name="Alice")
        LedgerService.apply_transaction(self.user.id, "credit", 10, "2024-01-01")

    def test_users_can_be_browsed(self):
        self.assertEqual(self.client.get("/admin/ledger/user/").status_code, 200)
        response = self.client.get(f"/admin/ledger/user/{self.user.id}/change/")
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Alice")

    def test_rows_cannot_be_added_or_deleted(self):
        self.assertEqual(self.client.get("/admin/ledger/user/add/").status_code, 403)
        self.assertEqual(self.client.get("/admin/ledger/transaction/add/").status_code, 403)
        response = self.client.post(f"/admin/ledger/user/{self.user.id}/delete/", {"post": "yes"})
        self.assertEqual(response.status_code, 403)
        self.assertTrue(User.objects.filter(pk=self.user.pk).exists())


# ============================================================
# Configuration Tests
# ============================================================


class EnvSettingsTest(SimpleTestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            env = EnvSettings(_env_file=None)
        self.assertEqual(env.db_engine, "sqlite")
        self.assertIsNone(env.db_name)
        self.assertEqual(env.log_level, "INFO")
        self.assertFalse(env.django_debug)

    def test_reads_environment(self):
        environ = {
            "DJANGO_DEBUG": "true",
            "DJANGO_ALLOWED_HOSTS": "ledger.example, api.ledger.example,",
            "DB_ENGINE": " Postgres ",
            "DB_PORT": "6432",
            "LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, environ, clear=True):
            env = EnvSettings(_env_file=None)

        self.assertTrue(env.django_debug)
        self.assertEqual(env.django_allowed_hosts, ["ledger.example", "api.ledger.example"])
        self.assertEqual(env.db_engine, "postgres")
        self.assertEqual(env.db_port, 6432)
        self.assertEqual(env.log_level, "DEBUG")

    def test_reads_dotenv_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".env"
            path.write_text(
                "LEDGER_APP_NAME=Pocket Ledger\n"
                "CORS_ALLOWED_ORIGINS=https://a.example,https://b.example\n",
                encoding="utf-8",
            )
            with patch.dict(os.environ, {}, clear=True):
                env = EnvSettings(_env_file=path)

        self.assertEqual(env.ledger_app_name, "Pocket Ledger")
        self.assertEqual(env.cors_allowed_origins, ["https://a.example", "https://b.example"])

    def test_environment_overrides_dotenv_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".env"
            path.write_text("LOG_LEVEL=ERROR\n", encoding="utf-8")
            with patch.dict(os.environ, {"LOG_LEVEL": "warning"}, clear=True):
                env = EnvSettings(_env_file=path)

        self.assertEqual(env.log_level, "WARNING")

    def test_unknown_db_engine_rejected(self):
        with patch.dict(os.environ, {"DB_ENGINE": "oracle"}, clear=True):
            with self.assertRaises(pydantic.ValidationError):
                EnvSettings(_env_file=None)


# ============================================================
# Management Command Tests
# ============================================================


@patch("ledger.management.commands.wait_for_db.time.sleep")
@patch("ledger.management.commands.wait_for_db.connections")
class WaitForDbCommandTest(SimpleTestCase):
    def test_database_ready(self, mock_connections, mock_sleep):
        call_command("wait_for_db", stdout=MagicMock())
        mock_connections.__getitem__.return_value.ensure_connection.assert_called_once()
        mock_sleep.assert_not_called()

    def test_database_becomes_ready(self, mock_connections, mock_sleep):
        conn = mock_connections.__getitem__.return_value
        conn.ensure_connection.side_effect = [OperationalError, OperationalError, None]

        call_command("wait_for_db", "--interval", "0", stdout=MagicMock())
        self.assertEqual(conn.ensure_connection.call_count, 3)
        self.assertEqual(mock_sleep.call_count, 2)

    def test_gives_up_after_attempts(self, mock_connections, mock_sleep):
        conn = mock_connections.__getitem__.return_value
        conn.ensure_connection.side_effect = OperationalError

        with self.assertRaises(CommandError):
            call_command("wait_for_db", "--attempts", "2", stdout=MagicMock())
        self.assertEqual(conn.ensure_connection.call_count, 2)
