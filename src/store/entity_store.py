"""
Entity Store

The single owner of canonical ledger state: members, payment records and
transactions, held together as one ClubSnapshot.

DESIGN DECISION: The store never performs cascading logic. It offers
lookups and exactly one mutation, commit(), which swaps in a complete new
snapshot. Compound operations therefore become visible all at once; a
reader can never observe a half-applied cascade.
"""

from typing import Optional

from src.models.club import (
    ClubSnapshot,
    Member,
    PaymentRecord,
    Transaction,
    example_members,
)
from src.services.storage.interface import SnapshotStorageInterface


class EntityStore:
    """
    In-memory holder of the current ClubSnapshot.

    Accessors return tuples so callers cannot append to the live lists.
    Records themselves are replaced, never mutated, by the engine.
    """

    def __init__(self, snapshot: Optional[ClubSnapshot] = None):
        self._snapshot = snapshot or ClubSnapshot()
        self._version = 0

    @classmethod
    def from_storage(
        cls,
        storage: Optional[SnapshotStorageInterface],
        seed_members: bool = True,
    ) -> tuple["EntityStore", bool]:
        """
        Build a store from persisted state.

        Returns:
            (store, seeded) where seeded is True when nothing was stored
            and the example members were used instead.

        Raises:
            StorageError: If stored data exists but cannot be read
        """
        snapshot = storage.load() if storage else None
        if snapshot is not None:
            return cls(snapshot), False

        seed = ClubSnapshot(members=example_members() if seed_members else [])
        return cls(seed), True

    # -- read access ------------------------------------------------------------

    @property
    def version(self) -> int:
        """Incremented on every commit."""
        return self._version

    @property
    def members(self) -> tuple[Member, ...]:
        return tuple(self._snapshot.members)

    @property
    def payments(self) -> tuple[PaymentRecord, ...]:
        return tuple(self._snapshot.payments)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._snapshot.transactions)

    def snapshot(self) -> ClubSnapshot:
        """Deep copy of the current state, safe to hand to collaborators."""
        return self._snapshot.model_copy(deep=True)

    # -- lookups ------------------------------------------------------------------

    def find_member(self, member_id: str) -> Optional[Member]:
        for member in self._snapshot.members:
            if member.id == member_id:
                return member
        return None

    def find_member_by_number(self, member_number: str) -> Optional[Member]:
        for member in self._snapshot.members:
            if member.member_number == member_number:
                return member
        return None

    def find_payment_record(
        self,
        member_id: str,
        month: int,
        year: int,
    ) -> Optional[PaymentRecord]:
        """
        Record for the natural key (member_id, month, year), if any.

        Callers must look here before creating a record so that at most
        one record exists per key.
        """
        for record in self._snapshot.payments:
            if (
                record.member_id == member_id
                and record.month == month
                and record.year == year
            ):
                return record
        return None

    def list_payment_records(self, member_id: str) -> list[PaymentRecord]:
        return [p for p in self._snapshot.payments if p.member_id == member_id]

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        for txn in self._snapshot.transactions:
            if txn.id == transaction_id:
                return txn
        return None

    def list_transactions_referencing(self, member_id: str) -> list[Transaction]:
        """Transactions whose member back-reference is member_id."""
        return [
            t for t in self._snapshot.transactions
            if t.related_member_id == member_id
        ]

    def list_transactions_by_payment_key(self, key: str) -> list[Transaction]:
        return [t for t in self._snapshot.transactions if t.payment_key == key]

    # -- mutation -----------------------------------------------------------------

    def commit(self, snapshot: ClubSnapshot) -> None:
        """Replace the whole state in one step."""
        self._snapshot = snapshot
        self._version += 1
