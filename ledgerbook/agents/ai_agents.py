"""
AI Agents for Ledgerbook

Two agents sit at the boundary to the external Gemini service:

1. RISK ANALYSIS AGENT:
   - CAN: Flag anomalies in a bounded snapshot of the ledger
   - CAN: Score overall risk (0-100) and give general advice
   - CANNOT: Mutate the ledger (the caller decides whether to store the result)
   - CANNOT: See more than the most recent N transactions

2. STRATEGY AGENT:
   - CAN: Turn headline figures into a few plain-text recommendations
   - CANNOT: See individual transactions

DESIGN DECISION: The two agents fail differently on purpose.
- Risk analysis distinguishes "unavailable" (no credential, returns None)
  from "service failed" (raises AnalysisServiceError) so the UI can tell the
  user to fix their settings or simply retry.
- Strategy recommendations are advisory. Any failure is logged and an empty
  string is returned.

The empty-ledger case is answered locally, before any credential check,
so it is deterministic and works offline.
"""

import json
from typing import Any, Iterable, Optional

import google.generativeai as genai
import structlog
from pydantic import ValidationError

from ledgerbook.config import GeminiSettings, get_settings
from ledgerbook.models.ledger import FinancialSummary, Product, Transaction
from ledgerbook.models.risk import RiskAnomaly, RiskAssessment
from ledgerbook.reports.aggregation import recent_transactions


logger = structlog.get_logger(__name__)

INSUFFICIENT_DATA_ADVICE = (
    "There are no transactions or inventory records to analyze yet."
)

RISK_SYSTEM_INSTRUCTION = (
    "You are a meticulous compliance assistant for small businesses."
)

BULLET = "•"


class AnalysisServiceError(Exception):
    """The analysis service could not be reached or returned unusable output."""
    pass


def _build_model(
    settings: GeminiSettings,
    max_output_tokens: int,
    system_instruction: Optional[str] = None,
    json_output: bool = False,
):
    """Configure Google Generative AI and build a model handle."""
    genai.configure(api_key=settings.api_key)
    generation_config: dict[str, Any] = {
        "temperature": settings.temperature,
        "max_output_tokens": max_output_tokens,
    }
    if json_output:
        generation_config["response_mime_type"] = "application/json"
    return genai.GenerativeModel(
        model_name=settings.model_name,
        generation_config=generation_config,
        system_instruction=system_instruction,
    )


def _response_text(response) -> str:
    # .text raises ValueError when the candidate was blocked or has no parts
    try:
        return (response.text or "").strip()
    except ValueError:
        return ""


def extract_json_object(text: str) -> dict:
    """
    Parse the JSON object in a model response.

    Tolerates surrounding prose or code fences by taking the span between
    the first '{' and the last '}'.

    Raises:
        AnalysisServiceError: if no JSON object can be parsed
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            raise AnalysisServiceError("Analysis response contained no JSON object")
        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError as e:
            raise AnalysisServiceError(f"Analysis response was not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise AnalysisServiceError("Analysis response was not a JSON object")
    return data


def _transaction_context(transaction: Transaction) -> dict:
    data = transaction.model_dump(
        mode="json",
        include={
            "id", "date", "description", "type", "category",
            "contact_name", "product_name",
        },
    )
    # JSON numbers, not Decimal strings
    data["amount"] = float(transaction.amount)
    data["quantity"] = (
        float(transaction.quantity) if transaction.quantity is not None else None
    )
    return data


def build_risk_context(
    transactions: Iterable[Transaction],
    products: Iterable[Product],
    window: int = 50,
) -> dict:
    """
    The bounded data snapshot sent for analysis.

    Only the `window` most recent transactions are included. Products are
    reduced to name, stock, cost and price. Amounts, quantities
    and stock are sent as JSON numbers.
    """
    return {
        "transactions": [
            _transaction_context(t)
            for t in recent_transactions(transactions, limit=window)
        ],
        "inventory": [
            {
                "name": p.name,
                "stock": float(p.stock),
                "cost": float(p.cost),
                "price": float(p.price),
            }
            for p in products
        ],
    }


def parse_risk_assessment(data: dict) -> RiskAssessment:
    """
    Turn the service's JSON into a RiskAssessment.

    The score is rounded and clamped to 0..100. Malformed anomalies are
    skipped rather than failing the whole assessment.

    Raises:
        AnalysisServiceError: if the score is missing or not a number
    """
    try:
        score = round(float(data["overall_score"]))
    except (KeyError, TypeError, ValueError) as e:
        raise AnalysisServiceError("Analysis response has no usable overall_score") from e
    score = max(0, min(100, score))

    anomalies = []
    raw_anomalies = data.get("anomalies") or []
    if not isinstance(raw_anomalies, list):
        raw_anomalies = []
    for idx, raw in enumerate(raw_anomalies):
        try:
            anomalies.append(RiskAnomaly.model_validate(raw))
        except ValidationError as e:
            logger.warning("risk_anomaly_skipped", index=idx, error=str(e))

    return RiskAssessment(
        overall_score=score,
        general_advice=str(data.get("general_advice") or ""),
        anomalies=anomalies,
    )


class RiskAnalysisAgent:
    """
    Sends a bounded ledger snapshot to Gemini and returns a RiskAssessment.

    RETURNS:
    - a zero-score assessment for an empty ledger (no call made)
    - None when no API key is configured
    - a RiskAssessment on success

    RAISES:
    - AnalysisServiceError on network, service, empty-response or parse failure
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model=None,
        window: Optional[int] = None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model
        self._window = window or get_settings().app.risk_transaction_window

    @property
    def is_available(self) -> bool:
        return self._model is not None or self._settings.is_configured

    def _get_model(self):
        if self._model is None:
            self._model = _build_model(
                self._settings,
                max_output_tokens=self._settings.max_tokens,
                system_instruction=RISK_SYSTEM_INSTRUCTION,
                json_output=True,
            )
        return self._model

    def build_prompt(
        self,
        transactions: Iterable[Transaction],
        products: Iterable[Product],
    ) -> str:
        context = build_risk_context(transactions, products, self._window)
        return f"""Act as an internal auditor and financial expert for a small business.
Analyze the following JSON data (transactions and inventory).

Your tasks:
1. Detect financial anomalies: duplicate transactions, implausible amounts.
2. Detect inventory anomalies:
   - Products with negative stock (a purchase was probably not recorded).
   - Products with stock piling up but no sales (dead stock).
   - Profit margins that are too thin (selling price vs cost).
3. Evaluate internal control: transactions without a clear customer or supplier.
4. Give an overall risk score from 0 (safe) to 100 (critical).
5. Give brief strategic advice.

Respond with ONLY a JSON object in this exact format:
{{"overall_score": 40, "general_advice": "...", "anomalies": [{{"transaction_id": "id or empty", "severity": "LOW|MEDIUM|HIGH", "description": "why this is anomalous", "recommendation": "what to do"}}]}}

Data:
{json.dumps(context)}"""

    async def assess_risk(
        self,
        transactions: Iterable[Transaction],
        products: Iterable[Product],
    ) -> Optional[RiskAssessment]:
        transactions = list(transactions)
        products = list(products)

        if not transactions and not products:
            return RiskAssessment(
                overall_score=0,
                general_advice=INSUFFICIENT_DATA_ADVICE,
                anomalies=[],
            )

        if not self.is_available:
            logger.warning("risk_analysis_unavailable", reason="missing_api_key")
            return None

        prompt = self.build_prompt(transactions, products)

        try:
            response = await self._get_model().generate_content_async(prompt)
        except Exception as e:
            logger.error("risk_analysis_call_failed", error=str(e))
            raise AnalysisServiceError(f"Could not reach analysis service: {e}") from e

        text = _response_text(response)
        if not text:
            raise AnalysisServiceError("Analysis service returned an empty response")

        assessment = parse_risk_assessment(extract_json_object(text))
        logger.info(
            "risk_analysis_received",
            overall_score=assessment.overall_score,
            anomalies=len(assessment.anomalies),
            transactions_sent=min(len(transactions), self._window),
        )
        return assessment


class StrategyAgent:
    """
    Produces short plain-text recommendations from headline figures.

    Never raises: unavailable or failed calls return "".
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model=None,
    ):
        self._settings = settings or get_settings().gemini
        self._model = model

    @property
    def is_available(self) -> bool:
        return self._model is not None or self._settings.is_configured

    def _get_model(self):
        if self._model is None:
            self._model = _build_model(self._settings, max_output_tokens=1024)
        return self._model

    @staticmethod
    def build_prompt(summary: FinancialSummary) -> str:
        return f"""Financial summary:
Income: {summary.total_income:,.2f}
Expenses: {summary.total_expense:,.2f}
Net profit: {summary.net_profit:,.2f}

Give 3 short strategic recommendations (Markdown bullet points) to improve the
operational efficiency and digital literacy of this small business."""

    async def recommend_strategy(self, summary: FinancialSummary) -> str:
        if not self.is_available:
            logger.warning("strategy_unavailable", reason="missing_api_key")
            return ""

        try:
            response = await self._get_model().generate_content_async(
                self.build_prompt(summary)
            )
        except Exception as e:
            logger.error("strategy_call_failed", error=str(e))
            return ""

        return _response_text(response)


def recommendation_lines(text: str) -> list[str]:
    """
    Split recommendation text into display lines.

    '*' and '-' bullets become '•'. Blank lines are dropped.
    """
    lines = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line[0] in "*-" and not line.startswith("**"):
            line = f"{BULLET} {line[1:].strip()}"
        lines.append(line)
    return lines
