"""
Core Data Models for the Club Dues Ledger

These models define the strict schemas for the three collections the
ledger keeps in sync:
1. Members
2. Monthly payment records (one per member/month/year)
3. Ledger transactions (manual entries plus auto-linked fee income)

DESIGN DECISION: Records are treated as values. The engine never mutates
a stored record in place; it builds replacements with model_copy() and
commits a whole new ClubSnapshot.
"""

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# CONSTANTS
# =============================================================================

MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

# Calendar years a payment record may be kept for
MIN_YEAR = 1900
MAX_YEAR = 9999

INCOME_CATEGORIES = [
    "Monthly Fee",
    "Donation",
    "Sponsorship",
    "Event Income",
    "Other Income",
]

EXPENSE_CATEGORIES = [
    "Equipment",
    "Venue Rental",
    "Tournament",
    "Refreshments",
    "Other Expense",
]


def new_id() -> str:
    """Collision-resistant identifier for members and transactions."""
    return str(uuid4())


def make_payment_key(member_id: str, month: int, year: int) -> str:
    """
    Deterministic payment-link key for (member, month, year).

    Auto-generated fee transactions carry this key so they can be found
    (and retracted) from the payment record that produced them.
    """
    return f"{member_id}-{month}-{year}"


# =============================================================================
# ENUMS
# =============================================================================

class PaymentStatus(str, Enum):
    """Paid/unpaid status of one member for one month."""
    PAID = "PAID"
    UNPAID = "UNPAID"


class TransactionType(str, Enum):
    """Direction of a ledger entry."""
    IN = "IN"
    OUT = "OUT"


# =============================================================================
# MEMBERS
# =============================================================================

class MemberInput(BaseModel):
    """
    Member data as entered by the user, before an id is assigned.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    ic_number: str = Field(
        default="",
        max_length=50,
        description="Identity-document number"
    )
    member_number: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Club member number (numeric-sortable display key)"
    )
    phone: str = Field(
        default="",
        max_length=30,
        description="Contact number"
    )
    join_date: date = Field(
        default_factory=date.today,
        description="Date the member joined the club"
    )


class Member(MemberInput):
    """A stored member."""

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique member ID"
    )

    @property
    def sort_number(self) -> int:
        """Member number as an int for ordering; non-numeric sorts first."""
        try:
            return int(self.member_number)
        except ValueError:
            return 0


# =============================================================================
# PAYMENT RECORDS
# =============================================================================

class PaymentRecord(BaseModel):
    """
    Paid/unpaid status for one (member, month, year).

    Created lazily the first time a month is marked paid; afterwards its
    status may toggle any number of times. Only a member cascade deletes it.
    """

    member_id: str = Field(
        ...,
        min_length=1,
        description="Member this record belongs to"
    )
    year: int = Field(
        ...,
        ge=MIN_YEAR,
        le=MAX_YEAR,
        description="Calendar year"
    )
    month: int = Field(
        ...,
        ge=0,
        le=11,
        description="Month index, 0 = January"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Monthly fee at the time the record was created"
    )
    paid_date: Optional[datetime] = Field(
        default=None,
        description="When the month was last marked paid"
    )
    status: PaymentStatus = Field(
        default=PaymentStatus.UNPAID,
        description="Payment status"
    )

    @property
    def payment_key(self) -> str:
        return make_payment_key(self.member_id, self.month, self.year)

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionInput(BaseModel):
    """
    A ledger entry as entered by the user, before an id is assigned.

    Manual entries never carry a payment key; see Transaction.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # dt.date: the field name shadows datetime.date inside the class body
    date: dt.date = Field(
        default_factory=dt.date.today,
        description="Transaction date"
    )
    type: TransactionType = Field(
        ...,
        description="IN (income) or OUT (expense)"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text category"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Amount (direction is given by type)"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Notes / description"
    )
    related_member_id: Optional[str] = Field(
        default=None,
        description="Member this entry relates to"
    )
    related_month: Optional[int] = Field(
        default=None,
        ge=0,
        le=11,
        description="Month (0-11) a fee entry pays for"
    )


class Transaction(TransactionInput):
    """
    A stored ledger entry.

    CRITICAL: A transaction with a payment_key was produced by the payment
    toggle. It mirrors a PAID payment record and cannot be edited or
    deleted directly.
    """

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique transaction ID"
    )
    payment_key: Optional[str] = Field(
        default=None,
        description="Payment-link key of the originating payment record"
    )

    @model_validator(mode='after')
    def validate_payment_link(self) -> 'Transaction':
        """An auto-linked entry must name its member and month."""
        if self.payment_key and (
            self.related_member_id is None or self.related_month is None
        ):
            raise ValueError(
                "Auto-linked transactions must reference a member and month"
            )
        return self

    @property
    def is_auto_linked(self) -> bool:
        return self.payment_key is not None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.type == TransactionType.IN else -self.amount


# =============================================================================
# SNAPSHOT
# =============================================================================

class ClubSnapshot(BaseModel):
    """
    The complete ledger state, persisted as a single blob.
    """

    members: list[Member] = Field(default_factory=list)
    payments: list[PaymentRecord] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)


def example_members() -> list[Member]:
    """Members seeded into an empty ledger."""
    return [
        Member(
            id="1",
            name="Ahmad bin Zulkifli",
            ic_number="900101-14-5543",
            member_number="1",
            phone="012-3456789",
            join_date=date(2023, 1, 15),
        ),
        Member(
            id="2",
            name="Siti Norhaliza",
            ic_number="920520-10-5002",
            member_number="2",
            phone="013-9876543",
            join_date=date(2023, 5, 20),
        ),
        Member(
            id="3",
            name="Mohd Razif",
            ic_number="880210-08-6677",
            member_number="3",
            phone="017-1122334",
            join_date=date(2024, 2, 10),
        ),
    ]


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of validating user input before it reaches the ledger.

    Errors block the operation; warnings are shown but do not block.
    """

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]
