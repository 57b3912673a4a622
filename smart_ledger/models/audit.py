"""
Audit Models for Smart Ledger

Every ledger mutation and every AI round trip is logged.
This provides:
1. Traceability of what the model returned and what was stored
2. Debugging information when a submission fails
3. A record of silent corrections (category repairs)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Capture
    CAPTURE_FAILED = "capture_failed"
    SUBMISSION_REJECTED = "submission_rejected"

    # AI pipeline
    AI_REQUEST_SENT = "ai_request_sent"
    AI_RESPONSE_PARSED = "ai_response_parsed"
    AI_REQUEST_FAILED = "ai_request_failed"
    CATEGORIES_REPAIRED = "categories_repaired"

    # Ledger
    TRANSACTIONS_ADDED = "transactions_added"
    TRANSACTION_DELETED = "transaction_deleted"

    # Persistence
    STORAGE_WRITE_FAILED = "storage_write_failed"

    # System events
    SYSTEM_ERROR = "system_error"


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

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
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
        description="Type of entity (e.g., 'transaction', 'ai_request', 'storage')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one AI submission)"
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
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transactions_added(ids, "ai", correlation_id)
        event = AuditEventBuilder.transaction_deleted(txn_id)
    """

    @staticmethod
    def capture_failed(
        source: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CAPTURE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="capture",
            description=f"Capture failed: {source}",
            error_message=error_message,
            details={"source": source},
            is_user_action=True,
        )

    @staticmethod
    def submission_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMISSION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="ai_request",
            correlation_id=correlation_id,
            description=f"Submission rejected locally: {reason}",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def ai_request_sent(
        part_kinds: list[str],
        model_name: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_REQUEST_SENT,
            entity_type="ai_request",
            correlation_id=correlation_id,
            description=f"AI request sent with {len(part_kinds)} parts",
            details={
                "parts": part_kinds,
                "model": model_name,
            },
        )

    @staticmethod
    def ai_response_parsed(
        record_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_RESPONSE_PARSED,
            entity_type="ai_request",
            correlation_id=correlation_id,
            description=f"AI returned {record_count} records",
            details={"record_count": record_count},
        )

    @staticmethod
    def ai_request_failed(
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_REQUEST_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ai_request",
            correlation_id=correlation_id,
            description=f"AI request failed: {error_type}",
            error_message=error_message,
            details={"error_type": error_type},
        )

    @staticmethod
    def categories_repaired(
        repairs: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORIES_REPAIRED,
            severity=AuditSeverity.WARNING,
            entity_type="ai_request",
            correlation_id=correlation_id,
            description=f"Replaced {len(repairs)} unknown category ids",
            details={"repairs": repairs},
        )

    @staticmethod
    def transactions_added(
        transaction_ids: list[str],
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_ADDED,
            entity_type="transaction",
            entity_id=transaction_ids[0] if len(transaction_ids) == 1 else None,
            correlation_id=correlation_id,
            description=f"Added {len(transaction_ids)} transactions ({source})",
            details={
                "transaction_ids": transaction_ids,
                "source": source,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction deleted: {transaction_id}",
            is_user_action=True,
        )

    @staticmethod
    def storage_write_failed(
        key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="storage",
            entity_id=key,
            description=f"Could not write collection {key}",
            error_message=error_message,
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
