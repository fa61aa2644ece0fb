"""AI Agents package."""

from src.agents.report_agent import (
    EMPTY_LEDGER_MESSAGE,
    GeminiReportAgent,
    ReportGenerationError,
    ReportGenerator,
    ReportKind,
    ReportRequest,
    ReportResult,
    UnavailableReportGenerator,
    fallback_text,
    report_file_name,
)

__all__ = [
    "EMPTY_LEDGER_MESSAGE",
    "GeminiReportAgent",
    "ReportGenerationError",
    "ReportGenerator",
    "ReportKind",
    "ReportRequest",
    "ReportResult",
    "UnavailableReportGenerator",
    "fallback_text",
    "report_file_name",
]
