"""Tests for input validation."""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from pydantic import ValidationError

from src.models.club import MemberInput, TransactionInput, TransactionType
from src.validation import LedgerValidator, is_before_joining


@pytest.fixture
def validator(app_settings) -> LedgerValidator:
    return LedgerValidator(app_settings)


class TestTransactionValidation:
    """Tests for manual ledger entries."""

    def test_valid_expense(self, validator, member_m1):
        result = validator.validate_transaction(
            TransactionInput(type=TransactionType.OUT, category="Equipment", amount=Decimal("20")),
            [member_m1],
        )
        assert result.is_valid
        assert result.issues == []

    def test_zero_amount_is_error(self, validator):
        result = validator.validate_transaction(
            TransactionInput(type=TransactionType.OUT, category="Equipment", amount=Decimal("0")),
            [],
        )
        assert result.has_errors
        assert result.errors[0].field == "amount"

    def test_fee_without_member_is_error(self, validator):
        result = validator.validate_transaction(
            TransactionInput(type=TransactionType.IN, category="Monthly Fee", amount=Decimal("30")),
            [],
        )
        assert [i.field for i in result.errors] == ["related_member_id"]

    def test_fee_as_expense_is_error(self, validator, member_m1):
        result = validator.validate_transaction(
            TransactionInput(
                type=TransactionType.OUT,
                category="Monthly Fee",
                amount=Decimal("30"),
                related_member_id="M1",
            ),
            [member_m1],
        )
        assert [i.field for i in result.errors] == ["type"]

    def test_unknown_member_is_error(self, validator, member_m1):
        result = validator.validate_transaction(
            TransactionInput(
                type=TransactionType.IN,
                category="Donation",
                amount=Decimal("30"),
                related_member_id="ghost",
            ),
            [member_m1],
        )
        assert result.errors[0].issue_type == "not_found"

    def test_custom_category_is_info_only(self, validator):
        result = validator.validate_transaction(
            TransactionInput(type=TransactionType.IN, category="Raffle", amount=Decimal("5")),
            [],
        )
        assert result.is_valid
        assert result.issues[0].severity == "info"

    def test_future_date_is_warning(self, validator):
        result = validator.validate_transaction(
            TransactionInput(
                date=date.today() + timedelta(days=3),
                type=TransactionType.IN,
                category="Donation",
                amount=Decimal("5"),
            ),
            [],
        )
        assert result.is_valid
        assert result.warnings[0].field == "date"


class TestMemberValidation:
    """Tests for member details."""

    def test_duplicate_number_is_error(self, validator, member_m1, member_m2):
        result = validator.validate_member(
            MemberInput(name="Copy", member_number="2"),
            [member_m1, member_m2],
        )
        assert result.errors[0].issue_type == "duplicate"

    def test_own_number_is_fine_when_editing(self, validator, member_m1, member_m2):
        result = validator.validate_member(member_m1, [member_m1, member_m2], member_id="M1")
        assert result.is_valid

    def test_non_numeric_number_is_warning(self, validator):
        result = validator.validate_member(MemberInput(name="A", member_number="A1"), [])
        assert result.is_valid
        assert result.warnings[0].issue_type == "non_numeric"


class TestToggleValidation:
    """Tests for the join-date rule."""

    def test_is_before_joining(self, member_m2):
        # joined 2024-02-10
        assert is_before_joining(member_m2, 0, 2024) is True
        assert is_before_joining(member_m2, 1, 2024) is False
        assert is_before_joining(member_m2, 11, 2023) is True
        assert is_before_joining(member_m2, 0, 2025) is False

    def test_validate_toggle(self, validator, member_m2):
        assert validator.validate_toggle(member_m2, 1, 2024).is_valid
        result = validator.validate_toggle(member_m2, 0, 2024)
        assert result.errors[0].issue_type == "before_join_date"

    def test_validate_toggle_month_range(self, validator, member_m2):
        assert validator.validate_toggle(member_m2, -1, 2024).has_errors

    def test_user_friendly_summary(self, validator):
        result = validator.validate_transaction(
            TransactionInput(type=TransactionType.IN, category="Monthly Fee", amount=Decimal("30")),
            [],
        )
        summary = LedgerValidator.get_user_friendly_summary(result)
        assert summary.startswith("Please fix the following:")
        assert "Select a member" in summary


class TestModelErrors:
    """Tests for form values the input models refuse outright."""

    def test_over_long_member_name(self):
        with pytest.raises(ValidationError) as exc_info:
            MemberInput(name="x" * 201, member_number="7", join_date=date(2024, 1, 1))

        result = LedgerValidator.from_model_error(exc_info.value)
        assert result.has_errors
        assert result.errors[0].field == "name"
        summary = LedgerValidator.get_user_friendly_summary(result)
        assert summary.startswith("Please fix the following:")
        assert "Name:" in summary

    def test_over_long_description_and_bad_amount(self):
        with pytest.raises(ValidationError) as exc_info:
            TransactionInput(
                type=TransactionType.OUT,
                category="Equipment",
                amount=Decimal("-1"),
                description="d" * 501,
            )

        fields = {i.field for i in LedgerValidator.from_model_error(exc_info.value).errors}
        assert "description" in fields
