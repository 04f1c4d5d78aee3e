"""Tests for the SQLAlchemy ledger gateway."""

from datetime import date, datetime
import pytest

from ledgersync.domain import entities
from ledgersync.domain.entities import AccountType, LedgerAccountSpec, LedgerTransaction
from ledgersync.domain.errors import NotFoundError, NotInitializedError
from ledgersync.ledger.sqlalchemy_ledger import SQLAlchemyLedgerGateway


def ledger_txn(imported_id, account, amount, **kwargs):
    return LedgerTransaction(
        imported_id=imported_id,
        account=account,
        date=kwargs.pop("date", date(2024, 1, 10)),
        amount=amount,
        **kwargs,
    )


class TestAccounts:
    """Tests for account operations."""

    def test_create_and_list_returns_domain_models(self, temp_ledger):
        """Test created accounts are listed as domain entities."""
        account_id = temp_ledger.create_account(LedgerAccountSpec(name="max_1", type=AccountType.CREDIT))

        [account] = temp_ledger.list_accounts()

        assert isinstance(account, entities.LedgerAccount)
        assert account.id == account_id
        assert account.name == "max_1"
        assert account.type == AccountType.CREDIT
        assert isinstance(account.created_at, datetime)

    def test_opening_balance_recorded(self, temp_ledger):
        """Test the opening balance becomes the account balance."""
        account_id = temp_ledger.create_account(LedgerAccountSpec(name="a"), 12345)
        assert temp_ledger.get_balance(account_id) == 12345

    def test_duplicate_names_allowed(self, temp_ledger):
        """Test two accounts may share a name and stay distinct."""
        first = temp_ledger.create_account(LedgerAccountSpec(name="a"))
        second = temp_ledger.create_account(LedgerAccountSpec(name="a"), 700)

        assert first != second
        assert [a.name for a in temp_ledger.list_accounts()] == ["a", "a"]
        assert temp_ledger.get_balance(second) == 700

    def test_delete_removes_account_and_note(self, temp_ledger):
        """Test deleting an account removes its transactions and note."""
        account_id = temp_ledger.create_account(LedgerAccountSpec(name="a"), 500)
        temp_ledger.attach_note(f"account-{account_id}", "#externalAccountNumber:1 DO NOT DELETE")

        temp_ledger.delete_account(account_id)

        assert temp_ledger.list_accounts() == []
        assert temp_ledger.query_notes("externalAccountNumber") == []
        assert temp_ledger.get_balance(account_id) == 0

    def test_delete_missing_account(self, temp_ledger):
        """Test deleting an unknown account raises."""
        with pytest.raises(NotFoundError):
            temp_ledger.delete_account("nope")


class TestNotes:
    """Tests for note operations."""

    def test_query_by_substring(self, temp_ledger):
        """Test notes are found by contained text."""
        temp_ledger.attach_note("account-a", "#externalAccountNumber:123 DO NOT DELETE")
        temp_ledger.attach_note("account-b", "#externalAccountNumber:1234 DO NOT DELETE")

        notes = temp_ledger.query_notes("#externalAccountNumber:123 DO NOT DELETE")

        assert [n.id for n in notes] == ["account-a"]

    def test_like_wildcards_are_literal(self, temp_ledger):
        """Test % and _ in the search text match only themselves."""
        temp_ledger.attach_note("account-a", "number:1X3")
        assert temp_ledger.query_notes("number:1_3") == []
        assert temp_ledger.query_notes("number:%") == []

    def test_attach_replaces_note(self, temp_ledger):
        """Test attaching twice keeps one note with the latest text."""
        temp_ledger.attach_note("account-a", "first")
        temp_ledger.attach_note("account-a", "second")
        [note] = temp_ledger.query_notes("")
        assert note.note == "second"


class TestImportTransactions:
    """Tests for importing transactions."""

    def test_new_transactions_added(self, temp_ledger):
        """Test unseen imported ids are added."""
        account_id = temp_ledger.create_account(LedgerAccountSpec(name="a"))

        result = temp_ledger.import_transactions(
            account_id, [ledger_txn("t1", account_id, -100), ledger_txn("t2", account_id, -250)]
        )

        assert len(result.added) == 2
        assert result.updated == []
        assert result.errors == []
        assert temp_ledger.get_balance(account_id) == -350

    def test_reimport_is_not_duplicated(self, temp_ledger):
        """Test importing the same ids twice does not add them again."""
        account_id = temp_ledger.create_account(LedgerAccountSpec(name="a"))
        batch = [ledger_txn("t1", account_id, -100)]

        temp_ledger.import_transactions(account_id, batch)
        result = temp_ledger.import_transactions(account_id, batch)

        assert result.added == []
        assert result.updated == []
        assert temp_ledger.get_balance(account_id) == -100

    def test_changed_transaction_updated(self, temp_ledger):
        """Test a re-import with changed fields updates the row."""
        account_id = temp_ledger.create_account(LedgerAccountSpec(name="a"))
        temp_ledger.import_transactions(account_id, [ledger_txn("t1", account_id, -100, cleared=False)])

        result = temp_ledger.import_transactions(account_id, [ledger_txn("t1", account_id, -120, cleared=True)])

        assert len(result.updated) == 1
        assert temp_ledger.get_balance(account_id) == -120

    def test_foreign_account_reported_in_band(self, temp_ledger):
        """Test a transaction for another account is an in-band error."""
        account_id = temp_ledger.create_account(LedgerAccountSpec(name="a"))

        result = temp_ledger.import_transactions(account_id, [ledger_txn("t1", "other", -1)])

        assert result.added == []
        assert len(result.errors) == 1

    def test_unknown_account_raises(self, temp_ledger):
        """Test importing into a missing account raises."""
        with pytest.raises(NotFoundError):
            temp_ledger.import_transactions("missing", [])


class TestLifecycle:
    """Tests for gateway lifecycle."""

    def test_use_before_download_raises(self):
        """Test operations need a loaded ledger."""
        with pytest.raises(NotInitializedError):
            SQLAlchemyLedgerGateway().list_accounts()

    def test_ledger_file_named_after_sync_id(self, tmp_path):
        """Test the default database lives in the data directory."""
        ledger = SQLAlchemyLedgerGateway()
        ledger.init("http://localhost:5006", str(tmp_path / "data"), "pw")
        ledger.download_ledger("budget-1")
        ledger.create_account(LedgerAccountSpec(name="a"))
        ledger.shutdown()

        assert (tmp_path / "data" / "budget-1.sqlite").exists()

    def test_amount_to_minor_units(self, temp_ledger):
        """Test the gateway's amount conversion."""
        assert temp_ledger.amount_to_minor_units(12.34) == 1234
        assert temp_ledger.amount_to_minor_units("-0.1") == -10
