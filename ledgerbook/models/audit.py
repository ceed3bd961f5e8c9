"""
Audit Models for Ledgerbook

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every ledger mutation
2. Debugging information when things go wrong
3. Visibility into silent decisions (e.g. a skipped stock adjustment)
4. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never modify them.
Storage keeps only the most recent events (bounded by configuration).
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ledgerbook.models.ledger import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger mutation and every external call has its own event type.
    """
    # Transactions
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_REJECTED = "transaction_rejected"

    # Inventory reconciliation
    STOCK_ADJUSTED = "stock_adjusted"
    RECONCILIATION_SKIPPED = "reconciliation_skipped"

    # Master data
    PRODUCT_ADDED = "product_added"
    PRODUCT_DELETED = "product_deleted"
    CONTACT_ADDED = "contact_added"
    CONTACT_DELETED = "contact_deleted"

    # Risk analysis
    RISK_ANALYSIS_STARTED = "risk_analysis_started"
    RISK_ANALYSIS_COMPLETED = "risk_analysis_completed"
    RISK_ANALYSIS_FAILED = "risk_analysis_failed"
    RISK_ANALYSIS_DISCARDED = "risk_analysis_discarded"

    # Recommendations
    RECOMMENDATION_GENERATED = "recommendation_generated"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    PERSIST_FAILED = "persist_failed"

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

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
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
        description="Type of entity (e.g., 'transaction', 'product', 'risk')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g. a transaction and its stock adjustment)"
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
            "entity_id": str(self.entity_id) if self.entity_id else None,
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
        event = AuditEventBuilder.transaction_recorded(tx_id, "INCOME", "150000")
        event = AuditEventBuilder.stock_adjusted(product_id, name, before, after, tx_id)
    """

    @staticmethod
    def transaction_recorded(
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
        category: str,
        user: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=transaction_id,
            description=f"{transaction_type.title()} recorded: {amount} ({category})",
            details={
                "type": transaction_type,
                "amount": amount,
                "category": category,
                "user": user,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: UUID,
        transaction_type: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=transaction_id,
            description=f"{transaction_type.title()} deleted: {amount}",
            details={
                "type": transaction_type,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_rejected(
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            description=f"Transaction rejected with {len(issues)} validation issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def stock_adjusted(
        product_id: UUID,
        product_name: str,
        stock_before: Decimal,
        stock_after: Decimal,
        transaction_id: UUID,
        reversal: bool = False,
    ) -> AuditEvent:
        action = "reversed" if reversal else "applied"
        return AuditEvent(
            event_type=AuditEventType.STOCK_ADJUSTED,
            entity_type="product",
            entity_id=product_id,
            correlation_id=transaction_id,
            description=f"Stock {action} for {product_name}: {stock_before} -> {stock_after}",
            details={
                "stock_before": str(stock_before),
                "stock_after": str(stock_after),
                "transaction_id": str(transaction_id),
                "reversal": reversal,
            },
        )

    @staticmethod
    def reconciliation_skipped(
        product_id: UUID,
        transaction_id: UUID,
        reversal: bool = False,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="product",
            entity_id=product_id,
            correlation_id=transaction_id,
            description="Stock adjustment skipped: product no longer exists",
            details={
                "transaction_id": str(transaction_id),
                "reversal": reversal,
            },
        )

    @staticmethod
    def master_data_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        name: str,
    ) -> AuditEvent:
        verb = "added" if event_type in (
            AuditEventType.PRODUCT_ADDED, AuditEventType.CONTACT_ADDED
        ) else "deleted"
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type.capitalize()} {verb}: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def risk_analysis_completed(
        score: int,
        anomaly_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RISK_ANALYSIS_COMPLETED,
            entity_type="risk",
            correlation_id=correlation_id,
            description=f"Risk analysis completed: score {score}/100, {anomaly_count} anomalies",
            details={
                "overall_score": score,
                "anomaly_count": anomaly_count,
            },
        )

    @staticmethod
    def risk_analysis_failed(
        reason: str,
        error_message: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RISK_ANALYSIS_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="risk",
            correlation_id=correlation_id,
            description=f"Risk analysis failed: {reason}",
            error_message=error_message,
            details={"reason": reason},
        )

    @staticmethod
    def persist_failed(
        key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSIST_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Failed to persist '{key}'",
            error_message=error_message,
            details={"key": key},
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
