"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of payment and ledger changes
2. Debugging capability
3. A trail the committee can review

The audit logger:
- Is synchronous, like the engine that calls it
- Gracefully handles failures (never breaks the ledger if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from src.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("audit")
        self._recent: list[AuditEvent] = []

    @property
    def recent_events(self) -> list[AuditEvent]:
        """Events logged by this process, newest first."""
        return list(reversed(self._recent))

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()
        self._recent.append(event)
        del self._recent[:-200]

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_member_added(self, member_id: str, name: str, member_number: str) -> None:
        """Log a new member."""
        self.log(AuditEventBuilder.member_added(
            member_id=member_id,
            name=name,
            member_number=member_number,
        ))

    def log_member_updated(self, member_id: str, name: str) -> None:
        self.log(AuditEventBuilder.member_updated(member_id=member_id, name=name))

    def log_member_deleted(
        self,
        member_id: str,
        name: str,
        payments_removed: int,
        transactions_removed: int,
    ) -> None:
        """Log a member cascade delete."""
        self.log(AuditEventBuilder.member_deleted(
            member_id=member_id,
            name=name,
            payments_removed=payments_removed,
            transactions_removed=transactions_removed,
        ))

    def log_transaction(
        self,
        event_type: AuditEventType,
        transaction_id: str,
        txn_type: str,
        category: str,
        amount: str,
    ) -> None:
        """Log a manual ledger change."""
        self.log(AuditEventBuilder.transaction_changed(
            event_type=event_type,
            transaction_id=transaction_id,
            txn_type=txn_type,
            category=category,
            amount=amount,
        ))

    def log_payment_toggled(
        self,
        payment_key: str,
        paid: bool,
        amount: str,
        transactions_removed: int = 0,
        transaction_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.payment_toggled(
            payment_key=payment_key,
            paid=paid,
            amount=amount,
            transactions_removed=transactions_removed,
            transaction_id=transaction_id,
        ))

    def log_rejected(
        self,
        operation: str,
        entity_id: Optional[str],
        error_code: str,
        error_message: str,
    ) -> None:
        """Log a user action the engine refused."""
        self.log(AuditEventBuilder.operation_rejected(
            operation=operation,
            entity_id=entity_id,
            error_code=error_code,
            error_message=error_message,
        ))

    def log_snapshot_loaded(
        self,
        source: str,
        members: int,
        payments: int,
        transactions: int,
        seeded: bool = False,
    ) -> None:
        self.log(AuditEventBuilder.snapshot_loaded(
            source=source,
            members=members,
            payments=payments,
            transactions=transactions,
            seeded=seeded,
        ))

    def log_save_failed(self, backend: str, error_message: str) -> None:
        """Log a persistence failure (state stays in memory)."""
        self.log(AuditEventBuilder.save_failed(
            backend=backend,
            error_message=error_message,
        ))

    def log_report_generated(
        self,
        kind: str,
        success: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.report_generated(
            kind=kind,
            success=success,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a report request).
    """
    return uuid4()
