"""
Data Models Package

This package contains all Pydantic models used in Ledgerbook.
All data flowing through the system must conform to these schemas.
"""

from ledgerbook.models.ledger import (
    CATEGORY_LABELS,
    Category,
    Contact,
    ContactRole,
    FinancialSummary,
    Product,
    ProfitAndLossStatement,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from ledgerbook.models.risk import (
    AnalysisState,
    RiskAnomaly,
    RiskAssessment,
    RiskSeverity,
)
from ledgerbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CATEGORY_LABELS",
    "Category",
    "Contact",
    "ContactRole",
    "FinancialSummary",
    "Product",
    "ProfitAndLossStatement",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    # Risk models
    "AnalysisState",
    "RiskAnomaly",
    "RiskAssessment",
    "RiskSeverity",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
