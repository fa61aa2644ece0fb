"""
Derived Views

DESIGN DECISION: Views are DETERMINISTIC read-only functions of the
current collections. They never touch storage and never mutate records,
so the UI can recompute them on every render.

Everything the dashboard, payment matrix and ledger pages display comes
from here; report prompts are built from the same numbers.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel, Field

from src.models.club import (
    MONTHS,
    ClubSnapshot,
    Member,
    PaymentRecord,
    PaymentStatus,
    Transaction,
    TransactionType,
)
from src.validation.validator import is_before_joining


ZERO = Decimal("0")


# =============================================================================
# VIEW MODELS
# =============================================================================

class MonthlyTotals(BaseModel):
    """Income and expense for one calendar month."""

    month: int = Field(..., ge=0, le=11)
    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def month_name(self) -> str:
        return MONTHS[self.month]

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class LedgerSummary(BaseModel):
    """Totals over a set of transactions."""

    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    transaction_count: int = 0

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense


class MemberFeeSummary(BaseModel):
    """A member's fees for one year against the session target."""

    member_id: str
    year: int
    paid_months: list[int] = Field(default_factory=list)
    paid_amount: Decimal = ZERO
    balance: Decimal = Field(
        default=ZERO,
        description="Remaining amount to the session target, never negative"
    )


class PaymentCell(BaseModel):
    """One month in a member's row of the payment matrix."""

    month: int
    status: PaymentStatus = PaymentStatus.UNPAID
    before_joining: bool = False


class PaymentMatrixRow(BaseModel):
    """One member's row in the payment matrix."""

    member: Member
    cells: list[PaymentCell]
    fees: MemberFeeSummary

    def cell(self, month: int) -> PaymentCell:
        return self.cells[month]


class TransactionFilter(BaseModel):
    """
    Ledger filter. None (or an empty search) means "no restriction".
    """

    search: str = ""
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    member_id: Optional[str] = None


class DashboardSummary(BaseModel):
    """Headline numbers for the dashboard."""

    year: int
    member_count: int
    total_income: Decimal
    total_expense: Decimal
    monthly: list[MonthlyTotals]

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense


# =============================================================================
# LEDGER TOTALS
# =============================================================================

def monthly_totals(transactions: Iterable[Transaction], year: int) -> list[MonthlyTotals]:
    """
    Income and expense bucketed by month of the transaction date.

    Always returns twelve entries, January first.
    """
    income = [ZERO] * 12
    expense = [ZERO] * 12
    for txn in transactions:
        if txn.date.year != year:
            continue
        idx = txn.date.month - 1
        if txn.type == TransactionType.IN:
            income[idx] += txn.amount
        else:
            expense[idx] += txn.amount

    return [
        MonthlyTotals(month=idx, income=income[idx], expense=expense[idx])
        for idx in range(12)
    ]


def ledger_summary(transactions: Iterable[Transaction]) -> LedgerSummary:
    """Total income, expense and count over the given transactions."""
    total_in = ZERO
    total_out = ZERO
    count = 0
    for txn in transactions:
        count += 1
        if txn.type == TransactionType.IN:
            total_in += txn.amount
        else:
            total_out += txn.amount
    return LedgerSummary(
        total_income=total_in,
        total_expense=total_out,
        transaction_count=count,
    )


# Same numbers, named for the filtered ledger table
filtered_totals = ledger_summary


# =============================================================================
# PAYMENTS
# =============================================================================

def payment_status(
    payments: Iterable[PaymentRecord],
    member_id: str,
    month: int,
    year: int,
) -> PaymentStatus:
    """Status for (member, month, year); UNPAID when no record exists."""
    for record in payments:
        if record.member_id == member_id and record.month == month and record.year == year:
            return record.status
    return PaymentStatus.UNPAID


def _paid_months(payments: Iterable[PaymentRecord], member_id: str, year: int) -> list[int]:
    return sorted({
        p.month for p in payments
        if p.member_id == member_id and p.year == year and p.is_paid
    })


def member_fee_summary(
    member_id: str,
    payments: Iterable[PaymentRecord],
    year: int,
    monthly_fee: Decimal,
    session_target: Decimal,
) -> MemberFeeSummary:
    """
    Paid months and amount for one member in one year.

    The paid amount is counted at the standard monthly fee; the balance
    is what remains to the session target, floored at zero.
    """
    months = _paid_months(payments, member_id, year)
    paid = monthly_fee * len(months)
    return MemberFeeSummary(
        member_id=member_id,
        year=year,
        paid_months=months,
        paid_amount=paid,
        balance=max(ZERO, session_target - paid),
    )


def payment_matrix(
    members: Iterable[Member],
    payments: Sequence[PaymentRecord],
    year: int,
    monthly_fee: Decimal,
    session_target: Decimal,
    filter_month: Optional[int] = None,
    filter_status: Optional[PaymentStatus] = None,
    search: str = "",
) -> list[PaymentMatrixRow]:
    """
    One row per member, sorted by member number.

    Args:
        filter_month: Month the status filter applies to
        filter_status: Keep only members with this status in filter_month
        search: Case-insensitive match on name or member number
    """
    status_by_key = {
        (p.member_id, p.month): p.status for p in payments if p.year == year
    }

    rows = []
    for member in sort_members_by_number(filter_members(members, search)):
        if filter_status is not None and filter_month is not None:
            current = status_by_key.get((member.id, filter_month), PaymentStatus.UNPAID)
            if current != filter_status:
                continue

        cells = [
            PaymentCell(
                month=idx,
                status=status_by_key.get((member.id, idx), PaymentStatus.UNPAID),
                before_joining=is_before_joining(member, idx, year),
            )
            for idx in range(12)
        ]
        rows.append(PaymentMatrixRow(
            member=member,
            cells=cells,
            fees=member_fee_summary(
                member.id, payments, year, monthly_fee, session_target
            ),
        ))
    return rows


# =============================================================================
# MEMBERS
# =============================================================================

def sort_members_by_number(members: Iterable[Member]) -> list[Member]:
    """Members ordered by numeric member number (non-numeric first)."""
    return sorted(members, key=lambda m: m.sort_number)


def filter_members(members: Iterable[Member], search: str = "") -> list[Member]:
    """Members whose name, member number or phone contains search."""
    needle = search.strip().lower()
    if not needle:
        return list(members)
    return [
        m for m in members
        if needle in m.name.lower()
        or needle in m.member_number.lower()
        or needle in m.phone
    ]


# =============================================================================
# TRANSACTIONS
# =============================================================================

def filter_transactions(
    transactions: Iterable[Transaction],
    members: Iterable[Member],
    criteria: Optional[TransactionFilter] = None,
) -> list[Transaction]:
    """
    Apply every criterion in the filter; newest first.

    The search matches the description (case-insensitive) or the member
    number of the related member.
    """
    criteria = criteria or TransactionFilter()
    numbers = {m.id: m.member_number for m in members}
    needle = criteria.search.strip().lower()

    matched = []
    for txn in transactions:
        if needle:
            member_number = numbers.get(txn.related_member_id or "", "")
            if needle not in txn.description.lower() and needle not in member_number:
                continue
        if criteria.member_id and txn.related_member_id != criteria.member_id:
            continue
        if criteria.date_from and txn.date < criteria.date_from:
            continue
        if criteria.date_to and txn.date > criteria.date_to:
            continue
        if criteria.type and txn.type != criteria.type:
            continue
        if criteria.category and txn.category != criteria.category:
            continue
        matched.append(txn)

    # Stable sort keeps insertion order within a day
    return sorted(matched, key=lambda t: t.date, reverse=True)


def transactions_to_rows(
    transactions: Iterable[Transaction],
    members: Iterable[Member],
) -> list[dict]:
    """Rows for the CSV export and the ledger table."""
    numbers = {m.id: m.member_number for m in members}
    rows = []
    for txn in transactions:
        number = numbers.get(txn.related_member_id or "")
        rows.append({
            "Date": txn.date.isoformat(),
            "Type": txn.type.value,
            "Category": txn.category,
            "Member No.": f"#{number}" if number else "-",
            "Description": txn.description,
            "Amount": f"{txn.amount:.2f}",
        })
    return rows


def dashboard_summary(snapshot: ClubSnapshot, year: int) -> DashboardSummary:
    """Member count, all-time totals and this year's monthly chart data."""
    totals = ledger_summary(snapshot.transactions)
    return DashboardSummary(
        year=year,
        member_count=len(snapshot.members),
        total_income=totals.total_income,
        total_expense=totals.total_expense,
        monthly=monthly_totals(snapshot.transactions, year),
    )
