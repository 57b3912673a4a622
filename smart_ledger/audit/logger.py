"""
Audit Logger

DESIGN DECISION: Every ledger mutation and AI round trip is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. A record of every category the system corrected on its own

The audit logger:
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
- Optionally keeps a bounded copy of recent events in the ledger storage
"""

import json
import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from smart_ledger.models.audit import AuditEvent, AuditEventBuilder
from smart_ledger.services.storage import PersistenceGateway


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
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structured logs to stderr at the given level."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The ledger storage under the audit key (for the settings page)
    """

    def __init__(
        self,
        gateway: Optional[PersistenceGateway] = None,
        audit_key: str = "yy_audit",
        retention: int = 500,
        max_chars: int = 40_000,
    ):
        """
        Initialize audit logger.

        Args:
            gateway: Storage for persistence. If None, only logs locally.
            audit_key: Collection key for persisted events
            retention: How many events to keep in storage (0 disables)
            max_chars: Upper bound on the stored trail's JSON length.
                Sheets cells hold 50,000 characters.
        """
        self._gateway = gateway
        self._audit_key = audit_key
        self._retention = retention
        self._max_chars = max_chars
        self._logger = structlog.get_logger("smart_ledger.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._gateway and self._retention:
            try:
                events = self._gateway.read_collection(self._audit_key, [])
                if not isinstance(events, list):
                    events = []
                events.append(event.model_dump(mode="json"))
                return self._gateway.write_collection(
                    self._audit_key,
                    self._trim(events[-self._retention:]),
                )
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def _trim(self, events: list) -> list:
        """Drop the oldest events until the trail fits in max_chars. Keeps the newest."""
        # ", " between items plus the surrounding brackets
        sizes = [len(json.dumps(e, ensure_ascii=False)) + 2 for e in events]
        total = sum(sizes)
        start = 0
        while total > self._max_chars and start < len(events) - 1:
            total -= sizes[start]
            start += 1
        return events[start:]

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """Most recent persisted events, newest first."""
        if not self._gateway:
            return []
        raw = self._gateway.read_collection(self._audit_key, [])
        if not isinstance(raw, list):
            return []
        events = []
        for item in reversed(raw[-limit:]):
            try:
                events.append(AuditEvent.model_validate(item))
            except ValueError:
                continue
        return events

    def log_capture_failed(self, source: str, error_message: str) -> None:
        self.log(AuditEventBuilder.capture_failed(source, error_message))

    def log_submission_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.submission_rejected(reason, correlation_id))

    def log_ai_request_sent(
        self,
        part_kinds: list[str],
        model_name: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.ai_request_sent(part_kinds, model_name, correlation_id))

    def log_ai_response_parsed(self, record_count: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.ai_response_parsed(record_count, correlation_id))

    def log_ai_request_failed(
        self,
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.ai_request_failed(error_type, error_message, correlation_id))

    def log_categories_repaired(self, repairs: list[dict], correlation_id: UUID) -> None:
        """Log silent category corrections."""
        self.log(AuditEventBuilder.categories_repaired(repairs, correlation_id))

    def log_transactions_added(
        self,
        transaction_ids: list[str],
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transactions_added(transaction_ids, source, correlation_id))

    def log_transaction_deleted(self, transaction_id: str) -> None:
        self.log(AuditEventBuilder.transaction_deleted(transaction_id))

    def log_storage_write_failed(self, key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.storage_write_failed(key, error_message))

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


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., one AI submission).
    Pass it through all subsequent operations.
    """
    return uuid4()
