"""
Data Models Package

This package contains all Pydantic models used by the club dues ledger.
All data flowing through the system must conform to these schemas.
"""

from src.models.club import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
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
    ValidationIssue,
    ValidationResult,
    example_members,
    make_payment_key,
    new_id,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Club models
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "MAX_YEAR",
    "MIN_YEAR",
    "MONTHS",
    "ClubSnapshot",
    "Member",
    "MemberInput",
    "PaymentRecord",
    "PaymentStatus",
    "Transaction",
    "TransactionInput",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "example_members",
    "make_payment_key",
    "new_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
