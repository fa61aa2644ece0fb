"""
Audit Models for the Club Dues Ledger

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Traceability of who-paid-what changes
2. Debugging information when things go wrong
3. A way to reconstruct history if the snapshot is lost

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Members
    MEMBER_ADDED = "member_added"
    MEMBER_UPDATED = "member_updated"
    MEMBER_DELETED = "member_deleted"

    # Ledger
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Dues
    PAYMENT_MARKED_PAID = "payment_marked_paid"
    PAYMENT_MARKED_UNPAID = "payment_marked_unpaid"

    # Rejected user actions
    OPERATION_REJECTED = "operation_rejected"

    # Persistence
    SNAPSHOT_LOADED = "snapshot_loaded"
    SNAPSHOT_SEEDED = "snapshot_seeded"
    SAVE_FAILED = "save_failed"

    # Reports
    REPORT_GENERATED = "report_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'member', 'payment', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID (or payment key) of the entity this event relates to"
    )

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.member_added(member_id, name, number)
        event = AuditEventBuilder.payment_toggled(key, paid=True, amount="30")
    """

    @staticmethod
    def member_added(
        member_id: str,
        name: str,
        member_number: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_ADDED,
            entity_type="member",
            entity_id=member_id,
            description=f"Member added: #{member_number} {name}",
            details={
                "name": name,
                "member_number": member_number,
            },
            is_user_action=True,
        )

    @staticmethod
    def member_updated(
        member_id: str,
        name: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_UPDATED,
            entity_type="member",
            entity_id=member_id,
            description=f"Member updated: {name}",
            is_user_action=True,
        )

    @staticmethod
    def member_deleted(
        member_id: str,
        name: str,
        payments_removed: int,
        transactions_removed: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="member",
            entity_id=member_id,
            description=(
                f"Member deleted: {name} "
                f"({payments_removed} payment records, "
                f"{transactions_removed} transactions removed)"
            ),
            details={
                "payments_removed": payments_removed,
                "transactions_removed": transactions_removed,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_changed(
        event_type: AuditEventType,
        transaction_id: str,
        txn_type: str,
        category: str,
        amount: str,
    ) -> AuditEvent:
        verb = {
            AuditEventType.TRANSACTION_ADDED: "added",
            AuditEventType.TRANSACTION_UPDATED: "updated",
            AuditEventType.TRANSACTION_DELETED: "deleted",
        }.get(event_type, "changed")
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction {verb}: [{txn_type}] {category} {amount}",
            details={
                "type": txn_type,
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def payment_toggled(
        payment_key: str,
        paid: bool,
        amount: str,
        transactions_removed: int = 0,
        transaction_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.PAYMENT_MARKED_PAID
                if paid
                else AuditEventType.PAYMENT_MARKED_UNPAID
            ),
            entity_type="payment",
            entity_id=payment_key,
            description=(
                f"Payment {payment_key} marked {'paid' if paid else 'unpaid'}"
            ),
            details={
                "amount": amount,
                "transaction_id": transaction_id,
                "transactions_removed": transactions_removed,
            },
            is_user_action=True,
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        entity_id: Optional[str],
        error_code: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_id=entity_id,
            description=f"Rejected {operation}",
            error_code=error_code,
            error_message=error_message,
            details={"operation": operation},
            is_user_action=True,
        )

    @staticmethod
    def snapshot_loaded(
        source: str,
        members: int,
        payments: int,
        transactions: int,
        seeded: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.SNAPSHOT_SEEDED
                if seeded
                else AuditEventType.SNAPSHOT_LOADED
            ),
            entity_type="snapshot",
            description=(
                f"Ledger {'seeded' if seeded else 'loaded'} from {source}"
            ),
            details={
                "members": members,
                "payments": payments,
                "transactions": transactions,
            },
        )

    @staticmethod
    def save_failed(
        backend: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            description=f"Snapshot save failed ({backend}); in-memory state kept",
            error_message=error_message,
            details={"backend": backend},
        )

    @staticmethod
    def report_generated(
        kind: str,
        success: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            severity=AuditSeverity.INFO if success else AuditSeverity.WARNING,
            entity_type="report",
            correlation_id=correlation_id,
            description=(
                f"Report '{kind}' generated"
                if success
                else f"Report '{kind}' fell back to default text"
            ),
            details={"kind": kind, "success": success},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
