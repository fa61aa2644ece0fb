"""Tests for the derived read-only views."""

import pytest
from datetime import date
from decimal import Decimal

from src.models.club import (
    ClubSnapshot,
    Member,
    PaymentRecord,
    PaymentStatus,
    Transaction,
    TransactionType,
)
from src.queries import (
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


FEE = Decimal("30")
TARGET = Decimal("150")


def paid(member_id: str, month: int, year: int = 2024) -> PaymentRecord:
    return PaymentRecord(
        member_id=member_id,
        year=year,
        month=month,
        amount=FEE,
        status=PaymentStatus.PAID,
    )


@pytest.fixture
def transactions() -> list[Transaction]:
    return [
        Transaction(id="T1", date=date(2024, 1, 5), type=TransactionType.IN,
                    category="Monthly Fee", amount=Decimal("30"),
                    description="Fee January - Ahmad", related_member_id="M1",
                    related_month=0, payment_key="M1-0-2024"),
        Transaction(id="T2", date=date(2024, 1, 20), type=TransactionType.OUT,
                    category="Equipment", amount=Decimal("45.50"),
                    description="Training mats"),
        Transaction(id="T3", date=date(2024, 3, 2), type=TransactionType.IN,
                    category="Donation", amount=Decimal("100"),
                    description="Sponsor, \"Kedai Ali\"", related_member_id="M2"),
        Transaction(id="T4", date=date(2023, 12, 30), type=TransactionType.OUT,
                    category="Venue Rental", amount=Decimal("200"),
                    description="Hall"),
    ]


class TestLedgerTotals:
    """Tests for income/expense aggregation."""

    def test_monthly_totals(self, transactions):
        months = monthly_totals(transactions, 2024)
        assert len(months) == 12
        assert months[0].income == Decimal("30")
        assert months[0].expense == Decimal("45.50")
        assert months[2].income == Decimal("100")
        assert months[11].expense == Decimal("0")
        assert months[0].month_name == "January"

    def test_ledger_summary(self, transactions):
        summary = ledger_summary(transactions)
        assert summary.total_income == Decimal("130")
        assert summary.total_expense == Decimal("245.50")
        assert summary.balance == Decimal("-115.50")
        assert summary.transaction_count == 4

    def test_empty_ledger(self):
        summary = ledger_summary([])
        assert summary.balance == Decimal("0")

    def test_dashboard_summary(self, transactions, member_m1, member_m2):
        snapshot = ClubSnapshot(members=[member_m1, member_m2], transactions=transactions)
        summary = dashboard_summary(snapshot, 2024)
        assert summary.member_count == 2
        assert summary.balance == Decimal("-115.50")
        assert summary.monthly[0].net == Decimal("-15.50")


class TestPaymentViews:
    """Tests for payment status and the matrix."""

    def test_payment_status_defaults_unpaid(self):
        payments = [paid("M1", 0)]
        assert payment_status(payments, "M1", 0, 2024) == PaymentStatus.PAID
        assert payment_status(payments, "M1", 1, 2024) == PaymentStatus.UNPAID
        assert payment_status(payments, "M1", 0, 2023) == PaymentStatus.UNPAID

    def test_member_fee_summary(self):
        payments = [paid("M1", 0), paid("M1", 1), paid("M1", 2, year=2023)]
        summary = member_fee_summary("M1", payments, 2024, FEE, TARGET)
        assert summary.paid_months == [0, 1]
        assert summary.paid_amount == Decimal("60")
        assert summary.balance == Decimal("90")

    def test_balance_floors_at_zero(self):
        payments = [paid("M1", m) for m in range(7)]
        summary = member_fee_summary("M1", payments, 2024, FEE, TARGET)
        assert summary.paid_amount == Decimal("210")
        assert summary.balance == Decimal("0")

    def test_unpaid_records_do_not_count(self):
        unpaid = paid("M1", 0).model_copy(update={"status": PaymentStatus.UNPAID})
        summary = member_fee_summary("M1", [unpaid], 2024, FEE, TARGET)
        assert summary.paid_amount == Decimal("0")

    def test_payment_matrix(self, member_m1, member_m2):
        rows = payment_matrix([member_m2, member_m1], [paid("M1", 0)], 2024, FEE, TARGET)
        assert [r.member.id for r in rows] == ["M1", "M2"]
        assert rows[0].cell(0).status == PaymentStatus.PAID
        assert rows[0].fees.balance == Decimal("120")
        # M2 joined February 2024
        assert rows[1].cell(0).before_joining is True
        assert rows[1].cell(1).before_joining is False

    def test_payment_matrix_status_filter(self, member_m1, member_m2):
        payments = [paid("M1", 2)]
        only_paid = payment_matrix(
            [member_m1, member_m2], payments, 2024, FEE, TARGET,
            filter_month=2, filter_status=PaymentStatus.PAID,
        )
        only_unpaid = payment_matrix(
            [member_m1, member_m2], payments, 2024, FEE, TARGET,
            filter_month=2, filter_status=PaymentStatus.UNPAID,
        )
        assert [r.member.id for r in only_paid] == ["M1"]
        assert [r.member.id for r in only_unpaid] == ["M2"]


class TestMemberViews:
    """Tests for member ordering and search."""

    def test_sort_by_number_is_numeric(self):
        members = [
            Member(name="Ten", member_number="10"),
            Member(name="Two", member_number="2"),
            Member(name="One", member_number="1"),
        ]
        assert [m.name for m in sort_members_by_number(members)] == ["One", "Two", "Ten"]

    def test_filter_members(self, member_m1, member_m2):
        members = [member_m1, member_m2]
        assert filter_members(members, "razif") == [member_m2]
        assert filter_members(members, "AHMAD") == [member_m1]
        assert filter_members(members, "3456789") == [member_m1]
        assert filter_members(members, "") == members


class TestTransactionViews:
    """Tests for ledger filtering and export rows."""

    def test_no_filter_sorts_newest_first(self, transactions, member_m1, member_m2):
        shown = filter_transactions(transactions, [member_m1, member_m2])
        assert [t.id for t in shown] == ["T3", "T2", "T1", "T4"]

    def test_search_description_or_member_number(self, transactions, member_m1, member_m2):
        members = [member_m1, member_m2]
        by_text = filter_transactions(transactions, members, TransactionFilter(search="MATS"))
        by_number = filter_transactions(transactions, members, TransactionFilter(search="2"))
        assert [t.id for t in by_text] == ["T2"]
        assert [t.id for t in by_number] == ["T3"]

    def test_combined_filters(self, transactions, member_m1):
        criteria = TransactionFilter(
            date_from=date(2024, 1, 1),
            date_to=date(2024, 1, 31),
            type=TransactionType.IN,
        )
        assert [t.id for t in filter_transactions(transactions, [member_m1], criteria)] == ["T1"]

        by_category = TransactionFilter(category="Venue Rental")
        assert [t.id for t in filter_transactions(transactions, [], by_category)] == ["T4"]

        by_member = TransactionFilter(member_id="M1")
        assert [t.id for t in filter_transactions(transactions, [], by_member)] == ["T1"]

    def test_filtered_totals(self, transactions):
        totals = filtered_totals(transactions[:2])
        assert totals.total_income == Decimal("30")
        assert totals.balance == Decimal("-15.50")

    def test_transactions_to_rows(self, transactions, member_m1, member_m2):
        rows = transactions_to_rows(transactions, [member_m1, member_m2])
        assert list(rows[0]) == ["Date", "Type", "Category", "Member No.", "Description", "Amount"]
        assert rows[0]["Member No."] == "#1"
        assert rows[1]["Member No."] == "-"
        assert rows[1]["Amount"] == "45.50"
        assert rows[2]["Description"] == "Sponsor, \"Kedai Ali\""
