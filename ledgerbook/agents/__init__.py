"""AI Agents package."""

from ledgerbook.agents.ai_agents import (
    INSUFFICIENT_DATA_ADVICE,
    AnalysisServiceError,
    RiskAnalysisAgent,
    StrategyAgent,
    build_risk_context,
    extract_json_object,
    parse_risk_assessment,
    recommendation_lines,
)

__all__ = [
    "INSUFFICIENT_DATA_ADVICE",
    "AnalysisServiceError",
    "RiskAnalysisAgent",
    "StrategyAgent",
    "build_risk_context",
    "extract_json_object",
    "parse_risk_assessment",
    "recommendation_lines",
]
