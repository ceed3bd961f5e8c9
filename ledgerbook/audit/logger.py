"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of every ledger mutation
2. Debugging capability
3. The owner can see the history of their bookkeeping
4. Visibility into decisions that are otherwise silent
   (e.g. a stock adjustment skipped because the product was deleted)

The audit logger:
- Always logs locally through structlog
- Optionally appends to a bounded "audit_log" record in key-value storage
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledgerbook.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from ledgerbook.services.storage import KeyValueStorageInterface


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


AUDIT_LOG_KEY = "audit_log"


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Key-value storage (for persistence and the in-app activity view)
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorageInterface] = None,
        storage_key: str = AUDIT_LOG_KEY,
        max_events: int = 500,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            storage_key: Key the event list is stored under.
            max_events: Only the newest max_events are kept in storage.
        """
        self._storage = storage
        self._storage_key = storage_key
        self._max_events = max_events
        self._logger = structlog.get_logger("ledgerbook.audit")

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

        if self._storage is None or self._max_events == 0:
            return True

        try:
            events = self._storage.get(self._storage_key) or []
            events.append(event.model_dump(mode="json"))
            self._storage.set(self._storage_key, events[-self._max_events:])
            return True
        except Exception as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    def recent_events(self, limit: int = 50) -> list[AuditEvent]:
        """
        Get the most recent persisted events, newest first.

        Malformed entries are skipped.
        """
        if self._storage is None:
            return []
        try:
            raw_events = self._storage.get(self._storage_key) or []
        except Exception as e:
            self._logger.error("audit_read_failed", error=str(e))
            return []

        events = []
        for raw in reversed(raw_events):
            try:
                events.append(AuditEvent.model_validate(raw))
            except Exception:
                continue
            if len(events) >= limit:
                break
        return events

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_simple(
        self,
        event_type: AuditEventType,
        description: str,
        correlation_id: Optional[UUID] = None,
        **details,
    ) -> None:
        """Log an event that needs no dedicated builder."""
        self.log(AuditEvent(
            event_type=event_type,
            description=description,
            correlation_id=correlation_id,
            details=details,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g. a risk analysis run).
    Pass it through all subsequent operations.
    """
    return uuid4()
