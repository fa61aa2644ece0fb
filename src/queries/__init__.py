"""Derived read-only views over the ledger."""

from src.queries.views import (
    DashboardSummary,
    LedgerSummary,
    MemberFeeSummary,
    MonthlyTotals,
    PaymentCell,
    PaymentMatrixRow,
    TransactionFilter,
    dashboard_summary,
    filter_members,
    filter_transactions,
    filtered_totals,
    ledger_summary,
    member_fee_summary,
    monthly_totals,
    payment_matrix,
    payment_status,
    sort_members_by_number,
    transactions_to_rows,
)
from src.validation.validator import is_before_joining

__all__ = [
    "DashboardSummary",
    "LedgerSummary",
    "MemberFeeSummary",
    "MonthlyTotals",
    "PaymentCell",
    "PaymentMatrixRow",
    "TransactionFilter",
    "dashboard_summary",
    "filter_members",
    "filter_transactions",
    "filtered_totals",
    "is_before_joining",
    "ledger_summary",
    "member_fee_summary",
    "monthly_totals",
    "payment_matrix",
    "payment_status",
    "sort_members_by_number",
    "transactions_to_rows",
]
