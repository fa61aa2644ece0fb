"""
Tests for the reconciliation engine

Covers the paid-month/ledger pairing, cascade delete, natural-key
uniqueness, the read-only status of fee entries and persistence failures.
"""

import pytest
from datetime import date
from decimal import Decimal
from itertools import product

from src.audit import AuditLogger
from src.engine import (
    DerivedRecordImmutableError,
    DuplicateMemberNumberError,
    InvalidInputError,
    NotFoundError,
    PreMembershipMonthError,
    ReconciliationEngine,
)
from src.models.audit import AuditEventType
from src.models.club import (
    ClubSnapshot,
    MemberInput,
    PaymentStatus,
    Transaction,
    TransactionInput,
    TransactionType,
)
from src.services.storage import PersistenceError, SnapshotStorageInterface
from src.store import EntityStore


def linked(engine: ReconciliationEngine, key: str) -> list[Transaction]:
    return engine.store.list_transactions_by_payment_key(key)


def assert_ledger_matches_matrix(engine: ReconciliationEngine):
    """Every PAID record has exactly one fee entry, every UNPAID none."""
    for record in engine.payments:
        count = len(linked(engine, record.payment_key))
        assert count == (1 if record.is_paid else 0), record.payment_key


class FailingStorage(SnapshotStorageInterface):
    backend_name = "broken"

    def load(self):
        return None

    def save(self, snapshot):
        raise PersistenceError("disk full")


class TestTogglePayment:
    """Tests for marking months paid and unpaid."""

    def test_first_toggle_creates_paid_record_and_fee_entry(self, engine):
        """Marking an untouched month paid creates both halves."""
        result = engine.toggle_payment("M1", 0, 2024)

        assert result.record_created is True
        assert result.status == PaymentStatus.PAID
        record = engine.store.find_payment_record("M1", 0, 2024)
        assert record.status == PaymentStatus.PAID
        assert record.amount == Decimal("30")
        assert record.paid_date is not None

        txns = linked(engine, "M1-0-2024")
        assert len(txns) == 1
        txn = txns[0]
        assert txn.type == TransactionType.IN
        assert txn.amount == Decimal("30")
        assert txn.category == "Monthly Fee"
        assert txn.related_member_id == "M1"
        assert txn.related_month == 0
        assert txn.description == "Fee January - Ahmad bin Zulkifli"
        assert txn.date == date(2024, 3, 10)
        assert result.created_transaction == txn

    def test_second_toggle_retracts_fee_entry(self, engine):
        """Toggling again marks unpaid and removes the entry."""
        before = len(engine.transactions)
        engine.toggle_payment("M1", 0, 2024)
        result = engine.toggle_payment("M1", 0, 2024)

        assert result.status == PaymentStatus.UNPAID
        assert result.transactions_removed == 1
        assert result.created_transaction is None
        assert engine.store.find_payment_record("M1", 0, 2024).paid_date is None
        assert linked(engine, "M1-0-2024") == []
        assert len(engine.transactions) == before

    def test_toggle_pairs_restore_state(self, engine):
        """Any even number of toggles returns to the starting state."""
        engine.toggle_payment("M1", 5, 2024)  # start from PAID
        for _ in range(3):
            engine.toggle_payment("M1", 5, 2024)
            engine.toggle_payment("M1", 5, 2024)
            assert engine.store.find_payment_record("M1", 5, 2024).is_paid
            assert len(linked(engine, "M1-5-2024")) == 1

    def test_remarking_paid_uses_fresh_entry(self, engine):
        """PAID -> UNPAID -> PAID creates a new fee entry."""
        first = engine.toggle_payment("M1", 2, 2024).created_transaction
        engine.toggle_payment("M1", 2, 2024)
        second = engine.toggle_payment("M1", 2, 2024)

        assert second.record_created is False
        assert second.created_transaction.id != first.id
        assert len(linked(engine, "M1-2-2024")) == 1

    def test_two_months_are_independent(self, engine):
        """Two months produce two records and two distinct entries."""
        engine.toggle_payment("M1", 0, 2024)
        engine.toggle_payment("M1", 1, 2024)

        assert len(engine.payments) == 2
        keys = {t.payment_key for t in engine.transactions}
        assert keys == {"M1-0-2024", "M1-1-2024"}

        engine.toggle_payment("M1", 0, 2024)
        assert len(linked(engine, "M1-1-2024")) == 1

    def test_natural_key_stays_unique(self, engine):
        """No sequence of toggles duplicates a (member, month, year) record."""
        for member_id, month, year in product(["M1", "M2"], [2, 3, 11], [2024, 2025]):
            for _ in range(3):
                engine.toggle_payment(member_id, month, year)

        keys = [(p.member_id, p.month, p.year) for p in engine.payments]
        assert len(keys) == len(set(keys))
        assert_ledger_matches_matrix(engine)

    def test_stale_linked_entries_are_all_removed(self, store, app_settings):
        """Marking unpaid removes every entry with the key, not just one."""
        engine = ReconciliationEngine(store, settings=app_settings)
        engine.toggle_payment("M1", 0, 2024)
        duplicate = linked(engine, "M1-0-2024")[0].model_copy(update={"id": "dup"})
        snapshot = store.snapshot()
        snapshot.transactions.append(duplicate)
        store.commit(snapshot)

        result = engine.toggle_payment("M1", 0, 2024)
        assert result.transactions_removed == 2
        assert linked(engine, "M1-0-2024") == []

    def test_unknown_member_rejected(self, engine):
        with pytest.raises(NotFoundError):
            engine.toggle_payment("nobody", 0, 2024)
        assert engine.payments == ()

    def test_month_out_of_range_rejected(self, engine):
        with pytest.raises(InvalidInputError):
            engine.toggle_payment("M1", 12, 2024)

    def test_year_out_of_range_rejected(self, engine):
        """An impossible year is refused as bad input and audited."""
        for year in (10000, 1899):
            with pytest.raises(InvalidInputError):
                engine.toggle_payment("M1", 0, year)
        assert engine.payments == ()
        assert engine.transactions == ()
        event = engine.audit_logger.recent_events[0]
        assert event.event_type == AuditEventType.OPERATION_REJECTED

    def test_month_before_joining_rejected(self, engine):
        """M2 joined in February 2024; January 2024 cannot be marked paid."""
        with pytest.raises(PreMembershipMonthError):
            engine.toggle_payment("M2", 0, 2024)
        with pytest.raises(PreMembershipMonthError):
            engine.toggle_payment("M2", 5, 2023)
        assert engine.payments == ()
        assert engine.transactions == ()

    def test_join_month_itself_allowed(self, engine):
        result = engine.toggle_payment("M2", 1, 2024)
        assert result.status == PaymentStatus.PAID

    def test_join_date_guard_can_be_disabled(self, store, app_settings):
        settings = app_settings.model_copy(update={"enforce_join_date": False})
        engine = ReconciliationEngine(store, settings=settings)
        result = engine.toggle_payment("M2", 0, 2024)
        assert result.status == PaymentStatus.PAID

    def test_stale_paid_month_before_joining_can_be_cleared(self, engine, member_m1):
        """Marking unpaid is allowed even when the month is now pre-join."""
        engine.toggle_payment("M1", 0, 2024)
        later = member_m1.model_copy(update={"join_date": date(2024, 6, 1)})
        engine.update_member(later)

        result = engine.toggle_payment("M1", 0, 2024)
        assert result.status == PaymentStatus.UNPAID
        assert linked(engine, "M1-0-2024") == []


class TestMemberLifecycle:
    """Tests for adding, updating and deleting members."""

    def test_add_member_assigns_fresh_id(self, engine):
        member = engine.add_member(MemberInput(name="Siti", member_number="3"))
        assert member.id not in ("M1", "M2")
        assert engine.store.find_member(member.id) == member

    def test_add_member_rejects_duplicate_number(self, engine):
        with pytest.raises(DuplicateMemberNumberError):
            engine.add_member(MemberInput(name="Copy", member_number="1"))
        assert len(engine.members) == 2

    def test_update_member(self, engine, member_m1):
        updated = member_m1.model_copy(update={"phone": "019-0000000"})
        engine.update_member(updated)
        assert engine.store.find_member("M1").phone == "019-0000000"
        assert [m.id for m in engine.members] == ["M1", "M2"]

    def test_update_member_keeps_own_number(self, engine, member_m1):
        """A member does not clash with their own member number."""
        engine.update_member(member_m1.model_copy(update={"name": "Ahmad Z."}))
        assert engine.store.find_member("M1").name == "Ahmad Z."

    def test_update_member_rejects_number_of_another(self, engine, member_m1):
        with pytest.raises(DuplicateMemberNumberError):
            engine.update_member(member_m1.model_copy(update={"member_number": "2"}))

    def test_update_unknown_member(self, engine, member_m1):
        with pytest.raises(NotFoundError):
            engine.update_member(member_m1.model_copy(update={"id": "ghost"}))

    def test_delete_member_cascades(self, engine):
        """Deleting removes the member, their records and their entries."""
        engine.toggle_payment("M1", 0, 2024)
        engine.toggle_payment("M1", 1, 2024)
        engine.toggle_payment("M2", 2, 2024)
        engine.add_transaction(TransactionInput(
            date=date(2024, 3, 1),
            type=TransactionType.IN,
            category="Donation",
            amount=Decimal("100"),
            related_member_id="M1",
        ))

        result = engine.delete_member("M1")

        assert result.payments_removed == 2
        assert result.transactions_removed == 3
        assert engine.store.find_member("M1") is None
        assert all(p.member_id != "M1" for p in engine.payments)
        assert all(t.related_member_id != "M1" for t in engine.transactions)
        assert all(not (t.payment_key or "").startswith("M1-") for t in engine.transactions)
        # Other members untouched
        assert len(linked(engine, "M2-2-2024")) == 1

    def test_delete_member_removes_entries_linked_only_by_key(self, engine):
        """An entry whose member reference was lost still goes with its key."""
        engine.toggle_payment("M1", 0, 2024)
        snapshot = engine.store.snapshot()
        orphan = snapshot.transactions[0].model_copy(update={"related_member_id": "other"})
        snapshot.transactions = [orphan]
        engine.store.commit(snapshot)

        result = engine.delete_member("M1")
        assert result.transactions_removed == 1
        assert engine.transactions == ()

    def test_delete_unknown_member(self, engine):
        with pytest.raises(NotFoundError):
            engine.delete_member("ghost")

    def test_delete_member_is_single_commit(self, engine):
        """Members, records and entries change in one store version."""
        engine.toggle_payment("M1", 0, 2024)
        version = engine.store.version
        engine.delete_member("M1")
        assert engine.store.version == version + 1


class TestManualTransactions:
    """Tests for manual ledger entries."""

    def test_add_transaction(self, engine):
        txn = engine.add_transaction(TransactionInput(
            date=date(2024, 3, 5),
            type=TransactionType.OUT,
            category="Equipment",
            amount=Decimal("45.50"),
            description="Training mats",
        ))
        assert engine.store.find_transaction(txn.id) == txn
        assert txn.payment_key is None

    def test_add_transaction_drops_payment_key(self, engine):
        """A manual entry can never be created with a payment key."""
        sneaky = Transaction(
            type=TransactionType.IN,
            category="Monthly Fee",
            amount=Decimal("30"),
            related_member_id="M1",
            related_month=0,
            payment_key="M1-0-2024",
        )
        txn = engine.add_transaction(sneaky)
        assert txn.payment_key is None
        assert txn.id != sneaky.id

    def test_add_transaction_rejects_zero_amount(self, engine):
        with pytest.raises(InvalidInputError):
            engine.add_transaction(TransactionInput(
                type=TransactionType.OUT,
                category="Equipment",
                amount=Decimal("0"),
            ))
        assert engine.transactions == ()

    def test_fee_category_requires_member(self, engine):
        with pytest.raises(InvalidInputError):
            engine.add_transaction(TransactionInput(
                type=TransactionType.IN,
                category="Monthly Fee",
                amount=Decimal("30"),
            ))

    def test_unknown_related_member_rejected(self, engine):
        with pytest.raises(InvalidInputError):
            engine.add_transaction(TransactionInput(
                type=TransactionType.IN,
                category="Donation",
                amount=Decimal("30"),
                related_member_id="ghost",
            ))

    def test_update_transaction(self, engine):
        txn = engine.add_transaction(TransactionInput(
            type=TransactionType.OUT,
            category="Refreshments",
            amount=Decimal("12"),
        ))
        engine.update_transaction(txn.model_copy(update={"amount": Decimal("15")}))
        assert engine.store.find_transaction(txn.id).amount == Decimal("15")

    def test_update_unknown_transaction(self, engine):
        ghost = Transaction(type=TransactionType.OUT, category="Equipment", amount=Decimal("1"))
        with pytest.raises(NotFoundError):
            engine.update_transaction(ghost)

    def test_delete_transaction(self, engine):
        txn = engine.add_transaction(TransactionInput(
            type=TransactionType.IN,
            category="Donation",
            amount=Decimal("10"),
        ))
        engine.delete_transaction(txn.id)
        assert engine.store.find_transaction(txn.id) is None

    def test_delete_unknown_transaction(self, engine):
        with pytest.raises(NotFoundError):
            engine.delete_transaction("ghost")

    def test_fee_entries_cannot_be_edited_or_deleted(self, engine):
        """Entries created by the toggle are read-only."""
        fee = engine.toggle_payment("M1", 0, 2024).created_transaction

        with pytest.raises(DerivedRecordImmutableError):
            engine.update_transaction(fee.model_copy(update={"amount": Decimal("1")}))
        with pytest.raises(DerivedRecordImmutableError):
            engine.delete_transaction(fee.id)
        assert linked(engine, "M1-0-2024") == [fee]

    def test_manual_entry_cannot_gain_payment_key(self, engine):
        txn = engine.add_transaction(TransactionInput(
            type=TransactionType.IN,
            category="Donation",
            amount=Decimal("10"),
            related_member_id="M1",
            related_month=0,
        ))
        with pytest.raises(DerivedRecordImmutableError):
            engine.update_transaction(txn.model_copy(update={"payment_key": "M1-0-2024"}))


class TestPersistenceAndAudit:
    """Tests for saving and auditing after each change."""

    def test_every_change_is_saved(self, engine, memory_storage):
        engine.toggle_payment("M1", 0, 2024)
        engine.add_member(MemberInput(name="Siti", member_number="3"))
        assert memory_storage.save_count == 2

        stored = memory_storage.load()
        assert len(stored.members) == 3
        assert len(stored.transactions) == 1

    def test_rejected_change_is_not_saved(self, engine, memory_storage):
        with pytest.raises(NotFoundError):
            engine.delete_member("ghost")
        assert memory_storage.save_count == 0

    def test_save_failure_keeps_memory_state(self, store, app_settings):
        audit = AuditLogger()
        engine = ReconciliationEngine(
            store,
            storage=FailingStorage(),
            audit_logger=audit,
            settings=app_settings,
        )

        engine.toggle_payment("M1", 0, 2024)

        assert engine.last_save_ok is False
        assert engine.store.find_payment_record("M1", 0, 2024).is_paid
        assert any(
            e.event_type == AuditEventType.SAVE_FAILED for e in audit.recent_events
        )

    def test_mutations_are_audited(self, engine, audit_logger):
        engine.toggle_payment("M1", 0, 2024)
        engine.toggle_payment("M1", 0, 2024)
        engine.delete_member("M2")

        types = [e.event_type for e in reversed(audit_logger.recent_events)]
        assert types == [
            AuditEventType.PAYMENT_MARKED_PAID,
            AuditEventType.PAYMENT_MARKED_UNPAID,
            AuditEventType.MEMBER_DELETED,
        ]

    def test_rejections_are_audited(self, engine, audit_logger):
        with pytest.raises(PreMembershipMonthError):
            engine.toggle_payment("M2", 0, 2024)

        event = audit_logger.recent_events[0]
        assert event.event_type == AuditEventType.OPERATION_REJECTED
        assert event.error_code == "pre_membership_month"

    def test_engine_without_storage(self, app_settings):
        engine = ReconciliationEngine(EntityStore(ClubSnapshot()), settings=app_settings)
        member = engine.add_member(MemberInput(name="Solo", member_number="1"))
        assert engine.last_save_ok is True
        assert engine.members == (member,)
