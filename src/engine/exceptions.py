"""
Ledger exceptions.

Every refusal by the engine is a typed exception carrying a machine-readable
code, so the UI can branch on the type and show the message.

    LedgerError
    +-- NotFoundError
    +-- InvalidInputError
    |   +-- DuplicateMemberNumberError
    |   +-- PreMembershipMonthError
    +-- DerivedRecordImmutableError
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""

    code: str = "ledger_error"

    def __init__(self, message: str, entity_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id


class NotFoundError(LedgerError):
    """Referenced member or transaction does not exist."""

    code = "not_found"


class InvalidInputError(LedgerError):
    """Input failed validation."""

    code = "invalid_input"

    def __init__(
        self,
        message: str,
        entity_id: Optional[str] = None,
        issues: Optional[list[str]] = None,
    ):
        super().__init__(message, entity_id)
        self.issues = issues or [message]


class DuplicateMemberNumberError(InvalidInputError):
    """Member number is already used by another member."""

    code = "duplicate_member_number"


class PreMembershipMonthError(InvalidInputError):
    """Month precedes the member's join month."""

    code = "pre_membership_month"


class DerivedRecordImmutableError(LedgerError):
    """Auto-linked fee transaction edited or deleted directly."""

    code = "derived_record_immutable"
