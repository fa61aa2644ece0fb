"""
Reconciliation Engine

Keeps members, monthly payment records and ledger transactions consistent.
Every mutation the UI can make goes through this class:

- add / update / delete member (delete cascades)
- add / update / delete manual transaction
- toggle payment (creates or retracts the auto-linked fee transaction)

DESIGN DECISION: Each operation builds a complete new ClubSnapshot and
commits it to the store in one step, then persists it. A save failure is
logged and reported through last_save_ok, but the in-memory state stays
authoritative and the user can keep working.

CRITICAL: A PAID record always has exactly one transaction carrying its
payment key, an UNPAID record has none. The toggle is the only code that
creates or removes such transactions.
"""

from datetime import datetime
from typing import Callable, NoReturn, Optional

from pydantic import BaseModel, Field

from src.audit import AuditLogger
from src.config import AppSettings, get_settings
from src.engine.exceptions import (
    DerivedRecordImmutableError,
    DuplicateMemberNumberError,
    InvalidInputError,
    LedgerError,
    NotFoundError,
    PreMembershipMonthError,
)
from src.models.audit import AuditEventType
from src.models.club import (
    MAX_YEAR,
    MIN_YEAR,
    MONTHS,
    ClubSnapshot,
    Member,
    MemberInput,
    PaymentRecord,
    PaymentStatus,
    Transaction,
    TransactionInput,
    TransactionType,
    ValidationResult,
    make_payment_key,
    new_id,
)
from src.services.storage.interface import SnapshotStorageInterface, StorageError
from src.store import EntityStore
from src.validation import LedgerValidator


class CascadeResult(BaseModel):
    """What a member delete removed."""

    member_id: str
    member_name: str
    payments_removed: int = 0
    transactions_removed: int = 0


class PaymentToggleResult(BaseModel):
    """Outcome of toggling one member/month."""

    record: PaymentRecord
    created_transaction: Optional[Transaction] = None
    transactions_removed: int = 0
    record_created: bool = Field(
        default=False,
        description="True when this toggle created the payment record"
    )

    @property
    def status(self) -> PaymentStatus:
        return self.record.status


def _raise_for_issues(
    result: ValidationResult,
    entity_id: Optional[str] = None,
) -> None:
    """Turn validation errors into the matching exception."""
    if result.is_valid:
        return

    errors = result.errors
    messages = [issue.message for issue in errors]
    kinds = {issue.issue_type for issue in errors}

    if "duplicate" in kinds:
        error_cls = DuplicateMemberNumberError
    elif "before_join_date" in kinds:
        error_cls = PreMembershipMonthError
    else:
        error_cls = InvalidInputError
    raise error_cls("; ".join(messages), entity_id=entity_id, issues=messages)


class ReconciliationEngine:
    """
    The only component that mutates ledger state.

    Collaborators are injected so tests can run fully in memory:
    storage=None skips persistence, clock fixes "now".
    """

    def __init__(
        self,
        store: EntityStore,
        storage: Optional[SnapshotStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self._store = store
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app
        self._clock = clock or datetime.now
        self._validator = validator or LedgerValidator(self._settings)
        self.last_save_ok = True

    # =========================================================================
    # READ ACCESS
    # =========================================================================

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def validator(self) -> LedgerValidator:
        return self._validator

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    @property
    def members(self) -> tuple[Member, ...]:
        return self._store.members

    @property
    def payments(self) -> tuple[PaymentRecord, ...]:
        return self._store.payments

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._store.transactions

    def snapshot(self) -> ClubSnapshot:
        return self._store.snapshot()

    # =========================================================================
    # MEMBERS
    # =========================================================================

    def add_member(self, data: MemberInput) -> Member:
        """
        Add a member with a fresh id.

        Raises:
            DuplicateMemberNumberError: If the member number is taken
        """
        member = Member(**data.model_dump(include=set(MemberInput.model_fields)))
        self._check(
            "add_member",
            member.id,
            self._validator.validate_member(member, self._store.members),
        )

        self._apply(members=[*self._store.members, member])
        self._audit_logger.log_member_added(
            member_id=member.id,
            name=member.name,
            member_number=member.member_number,
        )
        return member

    def update_member(self, member: Member) -> Member:
        """
        Replace the stored member with the same id.

        Raises:
            NotFoundError: If no member has this id
            DuplicateMemberNumberError: If another member has the number
        """
        if self._store.find_member(member.id) is None:
            self._reject(
                "update_member",
                NotFoundError(f"Member {member.id} not found", entity_id=member.id),
            )
        self._check(
            "update_member",
            member.id,
            self._validator.validate_member(
                member, self._store.members, member_id=member.id
            ),
        )

        members = [member if m.id == member.id else m for m in self._store.members]
        self._apply(members=members)
        self._audit_logger.log_member_updated(member_id=member.id, name=member.name)
        return member

    def delete_member(self, member_id: str) -> CascadeResult:
        """
        Remove a member with all of their payment records and every
        transaction that refers to them, in one commit.

        A transaction refers to the member either through its member
        reference or through the payment key of one of their records.
        """
        member = self._store.find_member(member_id)
        if member is None:
            self._reject(
                "delete_member",
                NotFoundError(f"Member {member_id} not found", entity_id=member_id),
            )

        member_keys = {
            record.payment_key
            for record in self._store.list_payment_records(member_id)
        }
        payments = [p for p in self._store.payments if p.member_id != member_id]
        transactions = [
            t for t in self._store.transactions
            if t.related_member_id != member_id
            and t.payment_key not in member_keys
        ]
        result = CascadeResult(
            member_id=member_id,
            member_name=member.name,
            payments_removed=len(self._store.payments) - len(payments),
            transactions_removed=len(self._store.transactions) - len(transactions),
        )

        self._apply(
            members=[m for m in self._store.members if m.id != member_id],
            payments=payments,
            transactions=transactions,
        )
        self._audit_logger.log_member_deleted(
            member_id=member_id,
            name=member.name,
            payments_removed=result.payments_removed,
            transactions_removed=result.transactions_removed,
        )
        return result

    # =========================================================================
    # MANUAL TRANSACTIONS
    # =========================================================================

    def add_transaction(self, data: TransactionInput) -> Transaction:
        """
        Record a manual ledger entry with a fresh id.

        Only the input fields are taken from data, so a manual entry can
        never carry a payment key.

        Raises:
            InvalidInputError: If the entry fails validation
        """
        txn = Transaction(**data.model_dump(include=set(TransactionInput.model_fields)))
        self._check(
            "add_transaction",
            txn.id,
            self._validator.validate_transaction(txn, self._store.members),
        )

        self._apply(transactions=[*self._store.transactions, txn])
        self._log_transaction(AuditEventType.TRANSACTION_ADDED, txn)
        return txn

    def update_transaction(self, transaction: Transaction) -> Transaction:
        """
        Replace a manual ledger entry.

        Raises:
            NotFoundError: If no transaction has this id
            DerivedRecordImmutableError: If either version is auto-linked
            InvalidInputError: If the entry fails validation
        """
        self._guard_manual("update_transaction", transaction.id, transaction)
        self._check(
            "update_transaction",
            transaction.id,
            self._validator.validate_transaction(transaction, self._store.members),
        )

        transactions = [
            transaction if t.id == transaction.id else t
            for t in self._store.transactions
        ]
        self._apply(transactions=transactions)
        self._log_transaction(AuditEventType.TRANSACTION_UPDATED, transaction)
        return transaction

    def delete_transaction(self, transaction_id: str) -> Transaction:
        """
        Remove a manual ledger entry.

        Raises:
            NotFoundError: If no transaction has this id
            DerivedRecordImmutableError: If the entry is auto-linked
        """
        existing = self._guard_manual("delete_transaction", transaction_id)

        self._apply(transactions=[
            t for t in self._store.transactions if t.id != transaction_id
        ])
        self._log_transaction(AuditEventType.TRANSACTION_DELETED, existing)
        return existing

    # =========================================================================
    # PAYMENT TOGGLE
    # =========================================================================

    def toggle_payment(self, member_id: str, month: int, year: int) -> PaymentToggleResult:
        """
        Flip the paid status of one member for one month.

        - No record yet: create it as PAID and add the fee transaction
        - PAID -> UNPAID: remove every transaction with the payment key
        - UNPAID -> PAID: add exactly one fee transaction

        Payment records and transactions are committed together.

        Raises:
            NotFoundError: If the member does not exist
            InvalidInputError: If month is outside 0-11 or year is out of range
            PreMembershipMonthError: If marking paid a month before the
                member joined (when the join-date guard is enabled)
        """
        key = make_payment_key(member_id, month, year)

        member = self._store.find_member(member_id)
        if member is None:
            self._reject(
                "toggle_payment",
                NotFoundError(f"Member {member_id} not found", entity_id=member_id),
            )
        if not 0 <= month <= 11:
            self._reject(
                "toggle_payment",
                InvalidInputError(
                    f"Month must be between 0 and 11, got {month}",
                    entity_id=key,
                ),
            )
        if not MIN_YEAR <= year <= MAX_YEAR:
            self._reject(
                "toggle_payment",
                InvalidInputError(
                    f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year}",
                    entity_id=key,
                ),
            )

        existing = self._store.find_payment_record(member_id, month, year)

        if existing is not None and existing.is_paid:
            return self._mark_unpaid(existing)

        self._check(
            "toggle_payment",
            key,
            self._validator.validate_toggle(member, month, year),
        )
        return self._mark_paid(member, month, year, existing)

    def _mark_unpaid(self, record: PaymentRecord) -> PaymentToggleResult:
        key = record.payment_key
        updated = record.model_copy(
            update={"status": PaymentStatus.UNPAID, "paid_date": None}
        )
        payments = [updated if p is record else p for p in self._store.payments]
        transactions = [t for t in self._store.transactions if t.payment_key != key]
        removed = len(self._store.transactions) - len(transactions)

        self._apply(payments=payments, transactions=transactions)
        self._audit_logger.log_payment_toggled(
            payment_key=key,
            paid=False,
            amount=str(record.amount),
            transactions_removed=removed,
        )
        return PaymentToggleResult(record=updated, transactions_removed=removed)

    def _mark_paid(
        self,
        member: Member,
        month: int,
        year: int,
        record: Optional[PaymentRecord],
    ) -> PaymentToggleResult:
        now = self._clock()
        fee = self._settings.monthly_fee

        if record is None:
            updated = PaymentRecord(
                member_id=member.id,
                year=year,
                month=month,
                amount=fee,
                paid_date=now,
                status=PaymentStatus.PAID,
            )
            payments = [*self._store.payments, updated]
        else:
            updated = record.model_copy(
                update={"status": PaymentStatus.PAID, "paid_date": now}
            )
            payments = [updated if p is record else p for p in self._store.payments]

        key = updated.payment_key
        # Drop stale entries first so at most one carries the key
        transactions = [t for t in self._store.transactions if t.payment_key != key]
        removed = len(self._store.transactions) - len(transactions)
        fee_txn = Transaction(
            id=new_id(),
            date=now.date(),
            type=TransactionType.IN,
            category=self._settings.fee_category,
            amount=fee,
            description=f"Fee {MONTHS[month]} - {member.name}",
            related_member_id=member.id,
            related_month=month,
            payment_key=key,
        )
        transactions.append(fee_txn)

        self._apply(payments=payments, transactions=transactions)
        self._audit_logger.log_payment_toggled(
            payment_key=key,
            paid=True,
            amount=str(fee),
            transactions_removed=removed,
            transaction_id=fee_txn.id,
        )
        return PaymentToggleResult(
            record=updated,
            created_transaction=fee_txn,
            transactions_removed=removed,
            record_created=record is None,
        )

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _guard_manual(
        self,
        operation: str,
        transaction_id: str,
        incoming: Optional[Transaction] = None,
    ) -> Transaction:
        """Return the stored entry, rejecting unknown or auto-linked ones."""
        existing = self._store.find_transaction(transaction_id)
        if existing is None:
            self._reject(
                operation,
                NotFoundError(
                    f"Transaction {transaction_id} not found",
                    entity_id=transaction_id,
                ),
            )
        if existing.is_auto_linked or (incoming is not None and incoming.is_auto_linked):
            self._reject(
                operation,
                DerivedRecordImmutableError(
                    "Fee entries created from the payment matrix can only be "
                    "changed by toggling the payment",
                    entity_id=transaction_id,
                ),
            )
        return existing

    def _check(
        self,
        operation: str,
        entity_id: Optional[str],
        result: ValidationResult,
    ) -> None:
        try:
            _raise_for_issues(result, entity_id)
        except LedgerError as e:
            self._reject(operation, e)

    def _reject(self, operation: str, error: LedgerError) -> NoReturn:
        """Audit a refused operation and raise its error."""
        self._audit_logger.log_rejected(
            operation=operation,
            entity_id=error.entity_id,
            error_code=error.code,
            error_message=error.message,
        )
        raise error

    def _apply(
        self,
        members: Optional[list[Member]] = None,
        payments: Optional[list[PaymentRecord]] = None,
        transactions: Optional[list[Transaction]] = None,
    ) -> None:
        """Commit a new snapshot built from the given collections, then save."""
        snapshot = ClubSnapshot(
            members=list(self._store.members) if members is None else members,
            payments=list(self._store.payments) if payments is None else payments,
            transactions=(
                list(self._store.transactions) if transactions is None else transactions
            ),
        )
        self._store.commit(snapshot)
        self.last_save_ok = self._persist()

    def _persist(self) -> bool:
        if self._storage is None:
            return True
        try:
            return self._storage.save(self._store.snapshot())
        except StorageError as e:
            self._audit_logger.log_save_failed(
                backend=self._storage.backend_name,
                error_message=str(e),
            )
            return False

    def _log_transaction(self, event_type: AuditEventType, txn: Transaction) -> None:
        self._audit_logger.log_transaction(
            event_type=event_type,
            transaction_id=txn.id,
            txn_type=txn.type.value,
            category=txn.category,
            amount=str(txn.amount),
        )
