"""
AI Report Agent for the Club Dues Ledger

DESIGN DECISION: Report generation is an injected capability. The app
talks to the ReportGenerator interface; GeminiReportAgent is the real
implementation and tests substitute a fake.

CRITICAL BOUNDARIES:
- CAN: Summarise figures computed by the derived views
- CAN: Draft a reminder message for one member
- CANNOT: Change ledger state (results are display-only text)
- CANNOT: Invent figures; every number in a prompt comes from the ledger

A failed call NEVER raises to the caller. It returns the fixed fallback
text for the report kind with success=False.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from enum import Enum
from typing import Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from src.config import AppSettings, GeminiSettings, get_settings
from src.models.club import ClubSnapshot, MONTHS, TransactionType
from src.queries.views import ledger_summary


logger = structlog.get_logger(__name__)


class ReportKind(str, Enum):
    """Reports the assistant can write."""
    FINANCIAL_ANALYSIS = "financial_analysis"
    ANNUAL = "annual"
    CASH_FLOW = "cash_flow"
    REMINDER = "reminder"


class ReportGenerationError(Exception):
    """The text-generation service failed or returned nothing."""
    pass


class ReportRequest(BaseModel):
    """
    What to report on.

    The snapshot is a copy; nothing in the request is written back.
    """

    kind: ReportKind
    snapshot: ClubSnapshot = Field(default_factory=ClubSnapshot)
    year: int = Field(
        default_factory=lambda: date.today().year,
        description="Year for the annual report"
    )
    member_name: Optional[str] = Field(
        default=None,
        description="Member to remind (REMINDER only)"
    )
    month: Optional[int] = Field(
        default=None,
        ge=0,
        le=11,
        description="Unpaid month to remind about (REMINDER only)"
    )


class ReportResult(BaseModel):
    """Generated text, or the fallback text when generation failed."""

    kind: ReportKind
    text: str
    success: bool = True
    error_message: Optional[str] = None
    generated_at: datetime = Field(default_factory=datetime.now)


EMPTY_LEDGER_MESSAGE = (
    "No transactions have been recorded yet. Add ledger entries before "
    "generating a cash-flow statement."
)


def fallback_text(request: ReportRequest) -> str:
    """Fixed text shown when a report cannot be generated."""
    if request.kind == ReportKind.FINANCIAL_ANALYSIS:
        return "Could not generate the AI report. Please check your API key."
    if request.kind == ReportKind.ANNUAL:
        return "Could not generate the annual report."
    if request.kind == ReportKind.CASH_FLOW:
        return "Could not generate the cash-flow statement."

    name = request.member_name or "member"
    month = MONTHS[request.month] if request.month is not None else "this month"
    return (
        f"Dear {name}, a friendly reminder that the club fee for {month} "
        f"is still outstanding. Thank you."
    )


def report_file_name(result: ReportResult, year: Optional[int] = None) -> str:
    """Download name for a report: annual reports by year, others by date."""
    if result.kind == ReportKind.ANNUAL:
        return f"annual_report_{year or result.generated_at.year}.txt"
    return f"{result.kind.value}_{result.generated_at.date().isoformat()}.txt"


class ReportGenerator(ABC):
    """Turns a ledger snapshot into human-readable text."""

    @abstractmethod
    async def generate_report(self, request: ReportRequest) -> ReportResult:
        """
        Generate the requested report.

        Must not raise for service failures; return a ReportResult with
        success=False and the fallback text instead.
        """
        pass


class UnavailableReportGenerator(ReportGenerator):
    """Used when no text-generation service is configured."""

    def __init__(self, reason: str = "Report generation is not configured"):
        self._reason = reason

    async def generate_report(self, request: ReportRequest) -> ReportResult:
        return ReportResult(
            kind=request.kind,
            text=fallback_text(request),
            success=False,
            error_message=self._reason,
        )


class GeminiReportAgent(ReportGenerator):
    """
    Report writer backed by Google Gemini.

    Prompts contain only figures computed from the snapshot.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        app_settings: Optional[AppSettings] = None,
        model=None,
    ):
        self._settings = settings or get_settings().gemini
        self._app = app_settings or get_settings().app
        if model is not None:
            self._model = model
        else:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def generate_report(self, request: ReportRequest) -> ReportResult:
        if request.kind == ReportKind.CASH_FLOW and not request.snapshot.transactions:
            return ReportResult(kind=request.kind, text=EMPTY_LEDGER_MESSAGE)

        prompt = self.build_prompt(request)
        try:
            text = await self._complete(prompt)
        except ReportGenerationError as e:
            logger.warning(
                "report_generation_failed",
                kind=request.kind.value,
                error=str(e),
            )
            return ReportResult(
                kind=request.kind,
                text=fallback_text(request),
                success=False,
                error_message=str(e),
            )

        return ReportResult(kind=request.kind, text=text)

    async def _complete(self, prompt: str) -> str:
        try:
            response = await self._model.generate_content_async(prompt)
            text = response.text.strip()
        except Exception as e:
            raise ReportGenerationError(f"Gemini request failed: {e}") from e

        if not text:
            raise ReportGenerationError("Gemini returned an empty response")
        return text

    # -- prompts ----------------------------------------------------------------

    def build_prompt(self, request: ReportRequest) -> str:
        """Prompt text for the request."""
        if request.kind == ReportKind.FINANCIAL_ANALYSIS:
            return self._financial_analysis_prompt(request.snapshot)
        if request.kind == ReportKind.ANNUAL:
            return self._annual_prompt(request.snapshot, request.year)
        if request.kind == ReportKind.CASH_FLOW:
            return self._cash_flow_prompt(request.snapshot)
        return self._reminder_prompt(request)

    def _money(self, amount) -> str:
        return f"{self._app.currency_symbol}{amount:,.2f}"

    def _financial_analysis_prompt(self, snapshot: ClubSnapshot) -> str:
        totals = ledger_summary(snapshot.transactions)
        return f"""You are the strategic finance officer of {self._app.club_name}.

Give a professional financial analysis based on the following data:
- Number of members: {len(snapshot.members)}
- Total income: {self._money(totals.total_income)}
- Total expenses: {self._money(totals.total_expense)}
- Current cash balance: {self._money(totals.balance)}

Cover:
1. The financial health of the club.
2. Suggestions for savings or investment.
3. Strategies to attract more outside contributions.

Use ONLY the figures above. Do not invent numbers."""

    def _annual_prompt(self, snapshot: ClubSnapshot, year: int) -> str:
        totals = ledger_summary(
            t for t in snapshot.transactions if t.date.year == year
        )
        return f"""Write a short annual financial report ({year}) for {self._app.club_name}.

Transaction data:
- Total income: {self._money(totals.total_income)}
- Total expenses: {self._money(totals.total_expense)}
- Year-end balance: {self._money(totals.balance)}

Give brief bullet-point comments on:
- The year's cash flow.
- Income compared with expenses.
- Advice for managing finances next year.

Use ONLY the figures above. Do not invent numbers."""

    def _cash_flow_prompt(self, snapshot: ClubSnapshot) -> str:
        lines = []
        for txn in sorted(snapshot.transactions, key=lambda t: t.date):
            direction = "IN" if txn.type == TransactionType.IN else "OUT"
            lines.append(
                f"{txn.date.isoformat()}: [{direction}] {txn.category} - "
                f"{self._money(txn.amount)} ({txn.description})"
            )
        data = "\n".join(lines)

        return f"""Produce a professional cash-flow statement for {self._app.club_name}.
Use the following raw transaction data:
{data}

The statement must contain:
1. Title: CASH FLOW STATEMENT - {self._app.club_name.upper()}.
2. Summary of receipts (inflows) by category.
3. Summary of payments (outflows) by category.
4. Net cash flow.
5. Brief analysis: comment on the club's liquidity and main spending trends.

Keep the tone formal and professional."""

    def _reminder_prompt(self, request: ReportRequest) -> str:
        month = MONTHS[request.month] if request.month is not None else "this month"
        return f"""Write a polite and friendly WhatsApp message reminding a member of
{self._app.club_name} named {request.member_name or "member"} that their
fee for {month} ({self._money(self._app.monthly_fee)}) has not been paid yet.

Keep it short and show the club's spirit of brotherhood.
Reply with the message text only."""
