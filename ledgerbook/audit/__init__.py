"""Audit logging package."""

from ledgerbook.audit.logger import AUDIT_LOG_KEY, AuditLogger, create_correlation_id

__all__ = ["AUDIT_LOG_KEY", "AuditLogger", "create_correlation_id"]
