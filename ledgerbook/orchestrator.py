"""
Main Orchestrator for Ledgerbook

This module ties together all the components and defines the
end-to-end flows for:
1. Transaction entry (draft -> defaults -> validate -> store -> reconcile)
2. Master data (product / contact -> validate -> store)
3. Risk analysis (snapshot -> Gemini -> store the assessment)
4. Strategy recommendations (summary -> Gemini -> text)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the Ledger Store without passing validation
- Only one risk analysis may be in flight at a time
- A result that arrives after the user moved on is discarded, not applied
- Every step is audited

The UI only talks to these flows; it never mutates the store directly.
"""

from decimal import Decimal
from enum import Enum
from typing import NamedTuple, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from ledgerbook.agents import AnalysisServiceError, RiskAnalysisAgent, StrategyAgent, recommendation_lines
from ledgerbook.audit import AUDIT_LOG_KEY, AuditLogger, create_correlation_id
from ledgerbook.config import Settings, get_settings
from ledgerbook.ledger import LedgerStore, build_transaction
from ledgerbook.models.audit import AuditEventBuilder, AuditEventType
from ledgerbook.models.ledger import (
    Contact,
    Product,
    Transaction,
    TransactionDraft,
    ValidationResult,
)
from ledgerbook.models.risk import AnalysisState, RiskAssessment
from ledgerbook.reports.aggregation import summarize
from ledgerbook.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsKeyValueStorage,
    InMemoryStorage,
    KeyValueStorageInterface,
    LocalJsonStorage,
)
from ledgerbook.validation import (
    ContactValidationError,
    ContactValidator,
    ProductValidationError,
    ProductValidator,
    TransactionValidationError,
    TransactionValidator,
)


logger = structlog.get_logger(__name__)


class AnalysisInProgressError(Exception):
    """A risk analysis was requested while another one is still pending."""
    pass


class AnalysisTracker:
    """
    State machine for the single in-flight analysis request.

        IDLE -> LOADING -> SUCCESS | ERROR

    start() hands out a generation token. Only the holder of the current
    token may complete the request; abandon() invalidates it, so a late
    result is recognised and dropped.
    """

    def __init__(self):
        self._state = AnalysisState.IDLE
        self._generation = 0
        self.error_message: Optional[str] = None

    @property
    def state(self) -> AnalysisState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state == AnalysisState.LOADING

    def start(self) -> int:
        if self.is_loading:
            raise AnalysisInProgressError("A risk analysis is already running")
        self._generation += 1
        self._state = AnalysisState.LOADING
        self.error_message = None
        return self._generation

    def is_current(self, token: int) -> bool:
        return self.is_loading and token == self._generation

    def succeed(self, token: int) -> bool:
        if not self.is_current(token):
            return False
        self._state = AnalysisState.SUCCESS
        return True

    def fail(self, token: int, message: str) -> bool:
        if not self.is_current(token):
            return False
        self._state = AnalysisState.ERROR
        self.error_message = message
        return True

    def abandon(self) -> None:
        """Drop the pending request (e.g. the user navigated away)."""
        if self.is_loading:
            self._generation += 1
            self._state = AnalysisState.IDLE


class AnalysisStatus(str, Enum):
    SUCCESS = "success"
    UNAVAILABLE = "unavailable"
    SERVICE_ERROR = "service_error"
    DISCARDED = "discarded"


class AnalysisOutcome(BaseModel):
    """What the UI needs to show after a risk analysis run."""

    status: AnalysisStatus
    message: str
    assessment: Optional[RiskAssessment] = None
    correlation_id: Optional[UUID] = None

    @property
    def is_retryable(self) -> bool:
        return self.status == AnalysisStatus.SERVICE_ERROR


UNAVAILABLE_MESSAGE = (
    "Risk analysis is unavailable. Check that GEMINI_API_KEY is configured."
)
SERVICE_ERROR_MESSAGE = (
    "Could not reach the analysis service. Please try again."
)


class RiskAnalysisFlow:
    """
    Orchestrates a risk analysis run.

    Flow:
    1. Start -> tracker moves to LOADING (second start is rejected)
    2. Snapshot -> current transactions and products from the store
    3. Analyze -> Gemini via RiskAnalysisAgent
    4. Apply -> store the assessment, unless the run was abandoned
    """

    def __init__(
        self,
        store: LedgerStore,
        agent: Optional[RiskAnalysisAgent] = None,
        tracker: Optional[AnalysisTracker] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._agent = agent or RiskAnalysisAgent()
        self.tracker = tracker or AnalysisTracker()
        self._audit_logger = audit_logger

    async def run_analysis(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> AnalysisOutcome:
        """
        Run one analysis.

        Raises:
            AnalysisInProgressError: if an analysis is already pending
        """
        token = self.tracker.start()
        correlation_id = correlation_id or create_correlation_id()

        if self._audit_logger:
            self._audit_logger.log_simple(
                AuditEventType.RISK_ANALYSIS_STARTED,
                "Risk analysis started",
                correlation_id=correlation_id,
                transactions=len(self._store.transactions),
                products=len(self._store.products),
            )

        try:
            assessment = await self._agent.assess_risk(
                self._store.transactions,
                self._store.products,
            )
        except AnalysisServiceError as e:
            if not self.tracker.fail(token, SERVICE_ERROR_MESSAGE):
                return self._discarded(correlation_id)
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.risk_analysis_failed(
                    reason="service_error",
                    error_message=str(e),
                    correlation_id=correlation_id,
                ))
                self._audit_logger.log_external_service_error(
                    service="gemini",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return AnalysisOutcome(
                status=AnalysisStatus.SERVICE_ERROR,
                message=SERVICE_ERROR_MESSAGE,
                correlation_id=correlation_id,
            )
        except Exception:
            self.tracker.fail(token, SERVICE_ERROR_MESSAGE)
            raise

        if not self.tracker.is_current(token):
            return self._discarded(correlation_id)

        if assessment is None:
            self.tracker.fail(token, UNAVAILABLE_MESSAGE)
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.risk_analysis_failed(
                    reason="unavailable",
                    error_message=None,
                    correlation_id=correlation_id,
                ))
            return AnalysisOutcome(
                status=AnalysisStatus.UNAVAILABLE,
                message=UNAVAILABLE_MESSAGE,
                correlation_id=correlation_id,
            )

        self._store.set_risk_assessment(assessment)
        self.tracker.succeed(token)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.risk_analysis_completed(
                score=assessment.overall_score,
                anomaly_count=len(assessment.anomalies),
                correlation_id=correlation_id,
            ))

        return AnalysisOutcome(
            status=AnalysisStatus.SUCCESS,
            message=f"Risk score: {assessment.overall_score}/100",
            assessment=assessment,
            correlation_id=correlation_id,
        )

    def _discarded(self, correlation_id: UUID) -> AnalysisOutcome:
        logger.info("risk_analysis_discarded", correlation_id=str(correlation_id))
        if self._audit_logger:
            self._audit_logger.log_simple(
                AuditEventType.RISK_ANALYSIS_DISCARDED,
                "Risk analysis result arrived after the request was abandoned",
                correlation_id=correlation_id,
            )
        return AnalysisOutcome(
            status=AnalysisStatus.DISCARDED,
            message="The analysis was cancelled before it finished.",
            correlation_id=correlation_id,
        )


class RecommendationStatus(str, Enum):
    NO_DATA = "no_data"
    UNAVAILABLE = "unavailable"
    EMPTY = "empty"
    SUCCESS = "success"


class RecommendationOutcome(BaseModel):
    status: RecommendationStatus
    text: str = ""
    lines: list[str] = Field(default_factory=list)


class RecommendationFlow:
    """
    Strategy recommendations for the Reports page.

    With no transactions there is nothing to summarise, so no call is made.
    An unavailable service and a service that produced nothing are reported
    separately.
    """

    def __init__(
        self,
        store: LedgerStore,
        agent: Optional[StrategyAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._agent = agent or StrategyAgent()
        self._audit_logger = audit_logger

    async def generate(self) -> RecommendationOutcome:
        transactions = self._store.transactions
        if not transactions:
            return RecommendationOutcome(status=RecommendationStatus.NO_DATA)

        if not self._agent.is_available:
            return RecommendationOutcome(status=RecommendationStatus.UNAVAILABLE)

        text = await self._agent.recommend_strategy(summarize(transactions))
        if not text:
            return RecommendationOutcome(status=RecommendationStatus.EMPTY)

        if self._audit_logger:
            self._audit_logger.log_simple(
                AuditEventType.RECOMMENDATION_GENERATED,
                "Strategy recommendations generated",
                length=len(text),
            )
        return RecommendationOutcome(
            status=RecommendationStatus.SUCCESS,
            text=text,
            lines=recommendation_lines(text),
        )


class TransactionEntryFlow:
    """
    Orchestrates recording a transaction.

    Flow:
    1. Draft -> fill defaults (quantity, category, amount, description)
    2. Validate -> errors block, warnings are returned to the caller
    3. Store -> add to the ledger and reconcile stock
    """

    def __init__(
        self,
        store: LedgerStore,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        user: Optional[str] = None,
    ):
        self._store = store
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger
        self._user = user or get_settings().app.default_user

    def record(self, draft: TransactionDraft) -> tuple[Transaction, ValidationResult]:
        """
        Raises:
            TransactionValidationError: if the draft has error-level issues
        """
        try:
            transaction, result = build_transaction(
                draft,
                self._store.products,
                self._store.contacts,
                user=self._user,
                validator=self._validator,
            )
        except TransactionValidationError as e:
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.transaction_rejected(
                    issues=[i.model_dump(mode="json") for i in e.result.issues],
                ))
            raise

        self._store.add_transaction(transaction)
        return transaction, result

    def delete(self, transaction_id: UUID) -> Optional[Transaction]:
        return self._store.delete_transaction(transaction_id)


class MasterDataFlow:
    """Validated add/delete for products and contacts."""

    def __init__(
        self,
        store: LedgerStore,
        product_validator: Optional[ProductValidator] = None,
        contact_validator: Optional[ContactValidator] = None,
    ):
        self._store = store
        self._product_validator = product_validator or ProductValidator()
        self._contact_validator = contact_validator or ContactValidator()

    def add_product(self, product: Product) -> tuple[Product, ValidationResult]:
        """
        Raises:
            ProductValidationError: if the product has error-level issues
        """
        result = self._product_validator.validate(product, self._store.products)
        if result.has_errors:
            raise ProductValidationError(result)
        return self._store.add_product(product), result

    def add_contact(self, contact: Contact) -> tuple[Contact, ValidationResult]:
        """
        Raises:
            ContactValidationError: if the contact has error-level issues
        """
        result = self._contact_validator.validate(contact, self._store.contacts)
        if result.has_errors:
            raise ContactValidationError(result)
        return self._store.add_contact(contact), result

    def delete_product(self, product_id: UUID) -> Optional[Product]:
        return self._store.delete_product(product_id)

    def delete_contact(self, contact_id: UUID) -> Optional[Contact]:
        return self._store.delete_contact(contact_id)


class AppComponents(NamedTuple):
    store: LedgerStore
    entry_flow: TransactionEntryFlow
    master_data_flow: MasterDataFlow
    risk_flow: RiskAnalysisFlow
    recommendation_flow: RecommendationFlow
    audit_logger: AuditLogger


def create_storage(settings: Optional[Settings] = None) -> KeyValueStorageInterface:
    """
    Build the configured storage backend.

    Falls back to local JSON files when Google Sheets is selected but
    cannot be reached.
    """
    settings = settings or get_settings()
    backend = settings.storage.backend

    if backend == "memory":
        return InMemoryStorage()

    if backend == "google_sheets":
        try:
            client = GoogleSheetsClient(settings.google_sheets)
            client.get_state_sheet()
            return GoogleSheetsKeyValueStorage(client)
        except Exception as e:
            # Storage not configured - continue with local files
            logger.warning(
                "google_sheets_unavailable",
                error=str(e),
                fallback="local",
            )

    return LocalJsonStorage(settings.storage.data_path)


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStorageInterface] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Defaults to the cached application settings.
        storage: Overrides the configured backend (used by tests).

    Returns:
        AppComponents with a loaded LedgerStore and all flows wired to it.
    """
    settings = settings or get_settings()
    storage = storage or create_storage(settings)
    prefix = settings.storage.key_prefix

    audit_logger = AuditLogger(
        storage if settings.app.audit_log_max_events > 0 else None,
        storage_key=f"{prefix}{AUDIT_LOG_KEY}",
        max_events=settings.app.audit_log_max_events,
    )

    store = LedgerStore(storage, audit_logger=audit_logger, key_prefix=prefix).load()

    return AppComponents(
        store=store,
        entry_flow=TransactionEntryFlow(
            store,
            validator=TransactionValidator(
                Decimal(str(settings.app.max_transaction_amount))
            ),
            audit_logger=audit_logger,
            user=settings.app.default_user,
        ),
        master_data_flow=MasterDataFlow(store),
        risk_flow=RiskAnalysisFlow(
            store,
            agent=RiskAnalysisAgent(
                settings.gemini,
                window=settings.app.risk_transaction_window,
            ),
            audit_logger=audit_logger,
        ),
        recommendation_flow=RecommendationFlow(
            store,
            agent=StrategyAgent(settings.gemini),
            audit_logger=audit_logger,
        ),
        audit_logger=audit_logger,
    )
