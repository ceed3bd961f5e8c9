"""
Risk Models for Ledgerbook

A RiskAssessment is produced by the external analysis service and stored
as a replaceable singleton. It is never partially updated: every successful
analysis replaces the previous assessment wholesale.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ledgerbook.models.ledger import utc_now


class RiskSeverity(str, Enum):
    """Severity of a flagged anomaly."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RiskAnomaly(BaseModel):
    """A single flagged data pattern (negative stock, thin margin, ...)."""

    severity: RiskSeverity
    description: str
    recommendation: str
    transaction_id: Optional[str] = Field(
        default=None,
        description="Transaction this anomaly refers to, if any"
    )

    @field_validator('severity', mode='before')
    @classmethod
    def normalize_severity(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('transaction_id', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class RiskAssessment(BaseModel):
    """
    Result of a risk analysis.

    overall_score: 0 (safe) to 100 (critical risk).
    """

    overall_score: int = Field(
        ...,
        ge=0,
        le=100,
        description="Risk score, higher is riskier"
    )
    general_advice: str = Field(
        default="",
        description="Strategic advice for the business owner"
    )
    anomalies: list[RiskAnomaly] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utc_now)

    @property
    def high_severity_count(self) -> int:
        return sum(1 for a in self.anomalies if a.severity == RiskSeverity.HIGH)


class AnalysisState(str, Enum):
    """
    Lifecycle of a pending analysis request.

    IDLE -> LOADING -> SUCCESS | ERROR
    A new analysis may only start from IDLE, SUCCESS or ERROR.
    """
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"
