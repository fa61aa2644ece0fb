"""
Main Orchestrator for the Club Dues Ledger

This module wires the components together and defines the two flows
the UI drives:
1. Ledger changes (UI -> engine -> store commit -> storage save)
2. Reports (store snapshot -> report generator -> text for display)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only the engine mutates ledger state
- Reports read a copy of the state and never write back
- Every step is audited

This is the "glue" that keeps the app usable even when storage or the
report service is unavailable.
"""

from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from src.agents import (
    GeminiReportAgent,
    ReportGenerator,
    ReportKind,
    ReportRequest,
    ReportResult,
    UnavailableReportGenerator,
    fallback_text,
)
from src.audit import AuditLogger, create_correlation_id
from src.config import Settings, get_settings
from src.engine import ReconciliationEngine
from src.services.storage import (
    AuditStorageInterface,
    InMemorySnapshotStorage,
    LocalFileSnapshotStorage,
    SnapshotStorageInterface,
    StorageError,
)
from src.store import EntityStore


logger = structlog.get_logger(__name__)


class ReportFlow:
    """
    Orchestrates report generation.

    Flow:
    1. Copy the current snapshot from the store
    2. Ask the generator for the report
    3. Audit success or failure
    4. Return the text (or the fallback text) for display

    A failure here never reaches the ledger.
    """

    def __init__(
        self,
        generator: ReportGenerator,
        store: EntityStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._generator = generator
        self._store = store
        self._audit_logger = audit_logger

    async def generate(
        self,
        kind: ReportKind,
        year: Optional[int] = None,
        member_name: Optional[str] = None,
        month: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ReportResult:
        """
        Generate one report from the current ledger.

        Args:
            kind: Which report
            year: Year for the annual report (defaults to this year)
            member_name, month: Recipient and unpaid month for reminders
        """
        correlation_id = correlation_id or create_correlation_id()

        fields = {
            "kind": kind,
            "snapshot": self._store.snapshot(),
            "member_name": member_name,
            "month": month,
        }
        if year is not None:
            fields["year"] = year
        request = ReportRequest(**fields)

        try:
            result = await self._generator.generate_report(request)
        except Exception as e:
            # Generators should not raise; degrade anyway
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"kind": kind.value},
                    correlation_id=correlation_id,
                )
            result = ReportResult(
                kind=kind,
                text=fallback_text(request),
                success=False,
                error_message=str(e),
            )

        if self._audit_logger:
            if not result.success:
                self._audit_logger.log_external_service_error(
                    service="report_generator",
                    error_message=result.error_message or "unknown error",
                    correlation_id=correlation_id,
                )
            self._audit_logger.log_report_generated(
                kind=kind.value,
                success=result.success,
                correlation_id=correlation_id,
            )

        return result


def _build_storage(
    settings: Settings,
) -> tuple[SnapshotStorageInterface, Optional[AuditStorageInterface]]:
    """Storage backends selected by APP_STORAGE_BACKEND."""
    app = settings.app

    if app.storage_backend == "google_sheets":
        # Imported here so gspread is only needed for this backend
        from src.services.storage.google_sheets import (
            GoogleSheetsAuditStorage,
            GoogleSheetsClient,
            GoogleSheetsSnapshotStorage,
        )

        client = GoogleSheetsClient(settings.google_sheets)
        return GoogleSheetsSnapshotStorage(client), GoogleSheetsAuditStorage(client)

    if app.storage_backend == "local":
        return LocalFileSnapshotStorage(app.data_path), None

    return InMemorySnapshotStorage(), None


def _build_report_generator(settings: Settings) -> ReportGenerator:
    try:
        return GeminiReportAgent(settings.gemini, settings.app)
    except ValidationError as e:
        logger.warning("report_generator_not_configured", error=str(e))
        return UnavailableReportGenerator(
            "Gemini API key not configured (set GEMINI_API_KEY)"
        )


def create_app_components(
    use_storage: bool = True,
    settings: Optional[Settings] = None,
    report_generator: Optional[ReportGenerator] = None,
) -> tuple[ReconciliationEngine, ReportFlow, SnapshotStorageInterface]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured storage backend.
                    Set to False to run purely in memory.
        settings: Settings to use instead of the cached ones
        report_generator: Generator to use instead of Gemini

    Returns:
        (engine, report_flow, storage)
    """
    settings = settings or get_settings()
    app = settings.app

    storage: SnapshotStorageInterface = InMemorySnapshotStorage()
    audit_storage = None

    if use_storage:
        try:
            storage, audit_storage = _build_storage(settings)
        except (StorageError, ValidationError) as e:
            # Storage not configured - continue in memory
            logger.warning(
                "storage_unavailable",
                backend=app.storage_backend,
                error=str(e),
            )
            storage, audit_storage = InMemorySnapshotStorage(), None

    audit_logger = AuditLogger(audit_storage)

    try:
        store, seeded = EntityStore.from_storage(storage, app.seed_example_members)
    except StorageError as e:
        audit_logger.log_error(
            error_type=type(e).__name__,
            error_message=str(e),
            details={"backend": storage.backend_name},
        )
        logger.warning(
            "storage_unavailable",
            backend=storage.backend_name,
            error=str(e),
        )
        storage = InMemorySnapshotStorage()
        audit_logger = AuditLogger()  # Local-only logging
        store, seeded = EntityStore.from_storage(storage, app.seed_example_members)

    audit_logger.log_snapshot_loaded(
        source=storage.backend_name,
        members=len(store.members),
        payments=len(store.payments),
        transactions=len(store.transactions),
        seeded=seeded,
    )

    engine = ReconciliationEngine(
        store,
        storage=storage,
        audit_logger=audit_logger,
        settings=app,
    )
    report_flow = ReportFlow(
        report_generator or _build_report_generator(settings),
        store,
        audit_logger,
    )
    return engine, report_flow, storage
