"""
Input Validation for Ledger Operations

DESIGN DECISION: Validation is split from the engine so the UI can run the
same checks before submitting a form and show every issue at once. The
engine runs them again before mutating anything.

Checks:
- Transactions: positive amount, fee category requires a member,
  referenced member must exist, category must match direction
- Members: member number must be unique, join date not in the future
- Payment toggles: month must not precede the member's join month

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

from datetime import date
from typing import Iterable, Optional

from pydantic import ValidationError

from src.config import AppSettings, get_settings
from src.models.club import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    MONTHS,
    Member,
    MemberInput,
    TransactionInput,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


def is_before_joining(member: Member, month: int, year: int) -> bool:
    """True when (month, year) precedes the month the member joined."""
    joined = member.join_date
    return year < joined.year or (
        year == joined.year and month < joined.month - 1
    )


class LedgerValidator:
    """
    Validates member and transaction input.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate_transaction(
        self,
        data: TransactionInput,
        members: Iterable[Member],
    ) -> ValidationResult:
        """
        Check a manual ledger entry.

        Returns: ValidationResult with all issues found
        """
        issues = []
        member_ids = {m.id for m in members}

        if data.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))

        is_fee = data.category == self._settings.fee_category
        if is_fee and not data.related_member_id:
            issues.append(ValidationIssue(
                field="related_member_id",
                issue_type="missing",
                message=f"Select a member for '{self._settings.fee_category}' entries",
                severity="error",
            ))

        if data.related_member_id and data.related_member_id not in member_ids:
            issues.append(ValidationIssue(
                field="related_member_id",
                issue_type="not_found",
                message=f"Member {data.related_member_id} does not exist",
                severity="error",
            ))

        if is_fee and data.type != TransactionType.IN:
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message=f"'{self._settings.fee_category}' entries must be income",
                severity="error",
            ))

        known = INCOME_CATEGORIES if data.type == TransactionType.IN else EXPENSE_CATEGORIES
        if data.category not in known and not is_fee:
            issues.append(ValidationIssue(
                field="category",
                issue_type="custom_category",
                message=f"'{data.category}' is not a standard category",
                severity="info",
            ))

        if data.date > date.today():
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message="Transaction date is in the future",
                severity="warning",
            ))

        return ValidationResult(issues=issues)

    def validate_member(
        self,
        data: MemberInput,
        members: Iterable[Member],
        member_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Check member details.

        Args:
            data: The submitted details
            members: Current members
            member_id: ID of the member being edited (excluded from
                       the uniqueness check), None for a new member
        """
        issues = []

        for other in members:
            if other.id != member_id and other.member_number == data.member_number:
                issues.append(ValidationIssue(
                    field="member_number",
                    issue_type="duplicate",
                    message=(
                        f"Member number {data.member_number} is already "
                        f"used by {other.name}"
                    ),
                    severity="error",
                ))
                break

        if not data.member_number.isdigit():
            issues.append(ValidationIssue(
                field="member_number",
                issue_type="non_numeric",
                message="Member number is not numeric; it will sort first",
                severity="warning",
            ))

        if data.join_date > date.today():
            issues.append(ValidationIssue(
                field="join_date",
                issue_type="future_date",
                message="Join date is in the future",
                severity="warning",
            ))

        return ValidationResult(issues=issues)

    def validate_toggle(
        self,
        member: Member,
        month: int,
        year: int,
    ) -> ValidationResult:
        """Check that a month may be marked paid for this member."""
        issues = []
        if not 0 <= month <= 11:
            issues.append(ValidationIssue(
                field="month",
                issue_type="invalid_value",
                message=f"Month must be between 0 and 11, got {month}",
                severity="error",
            ))
        elif self._settings.enforce_join_date and is_before_joining(member, month, year):
            issues.append(ValidationIssue(
                field="month",
                issue_type="before_join_date",
                message=(
                    f"{member.name} joined on {member.join_date.isoformat()}; "
                    f"{MONTHS[month]} {year} is before that"
                ),
                severity="error",
            ))
        return ValidationResult(issues=issues)

    @staticmethod
    def get_user_friendly_summary(result: ValidationResult) -> str:
        """
        One message suitable for showing in the UI.
        """
        if result.is_valid and not result.warnings:
            return "All details look good."

        if result.has_errors:
            lines = ["Please fix the following:"]
            lines.extend(f"- {issue.message}" for issue in result.errors)
        else:
            lines = ["Saved with warnings:"]
        lines.extend(f"- {issue.message}" for issue in result.warnings)
        return "\n".join(lines)

    @staticmethod
    def from_model_error(error: ValidationError) -> ValidationResult:
        """Turn a pydantic error raised while building an input model into issues."""
        issues = []
        for detail in error.errors():
            field = ".".join(str(part) for part in detail["loc"]) or "input"
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{field.replace('_', ' ').capitalize()}: {detail['msg']}",
                severity="error",
            ))
        return ValidationResult(issues=issues)
