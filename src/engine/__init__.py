"""
Reconciliation engine package.

The engine is the single entry point for ledger mutations.
"""

from src.engine.exceptions import (
    DerivedRecordImmutableError,
    DuplicateMemberNumberError,
    InvalidInputError,
    LedgerError,
    NotFoundError,
    PreMembershipMonthError,
)
from src.engine.reconciliation import (
    CascadeResult,
    PaymentToggleResult,
    ReconciliationEngine,
)

__all__ = [
    "CascadeResult",
    "PaymentToggleResult",
    "ReconciliationEngine",
    "DerivedRecordImmutableError",
    "DuplicateMemberNumberError",
    "InvalidInputError",
    "LedgerError",
    "NotFoundError",
    "PreMembershipMonthError",
]
