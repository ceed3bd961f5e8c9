"""
Tests for Ledgerbook

Test strategy:
1. Unit tests for individual components (models, reconciler, aggregation, validators)
2. Integration tests for flows (with a fake Gemini model and in-memory storage)
3. No real API calls in tests (use fakes)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from ledgerbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from ledgerbook.models.ledger import (
    Category,
    Contact,
    ContactRole,
    Product,
    ProfitAndLossStatement,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from ledgerbook.models.risk import RiskAnomaly, RiskAssessment, RiskSeverity


class TestLedgerModels:
    """Tests for product, contact and transaction models."""

    def test_product_creation(self):
        """Test Product model creation with defaults."""
        product = Product(name="Kopi Bubuk", price=Decimal("25000"), cost=Decimal("18000"))
        assert product.name == "Kopi Bubuk"
        assert product.unit == "Pcs"
        assert product.stock == Decimal("0")
        assert product.margin == Decimal("7000")

    def test_product_strips_whitespace(self):
        """Test that whitespace is stripped from product name."""
        product = Product(name="  Widget  ")
        assert product.name == "Widget"

    def test_product_allows_negative_stock(self):
        """Negative stock is an anomaly signal, not a validation error."""
        product = Product(name="Widget", stock=Decimal("-3"))
        assert product.stock == Decimal("-3")

    def test_product_rejects_negative_price(self):
        """Test that negative prices are rejected."""
        with pytest.raises(ValidationError):
            Product(name="Widget", price=Decimal("-1"))

    def test_contact_defaults_to_customer(self):
        """Test Contact default role."""
        contact = Contact(name="Budi")
        assert contact.role == ContactRole.CUSTOMER
        assert contact.phone is None

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        tx = Transaction(
            description="Consulting",
            amount=Decimal("1500.50"),
            type=TransactionType.INCOME,
            category=Category.SERVICE,
        )
        assert tx.user == "Owner"
        assert tx.date.tzinfo is not None
        assert tx.affects_stock is False
        assert tx.signed_amount == Decimal("1500.50")

    def test_expense_signed_amount_is_negative(self):
        """Test signed_amount for expenses."""
        tx = Transaction(
            description="Rent",
            amount=Decimal("200"),
            type=TransactionType.EXPENSE,
            category=Category.OPERATIONAL,
        )
        assert tx.signed_amount == Decimal("-200")

    def test_transaction_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            Transaction(
                description="Refund",
                amount=Decimal("-100"),
                type=TransactionType.INCOME,
                category=Category.SALES,
            )

    def test_transaction_rejects_sub_cent_amount(self):
        """Test that amounts with more than 2 decimal places are rejected."""
        with pytest.raises(ValidationError):
            Transaction(
                description="Odd",
                amount=Decimal("1.005"),
                type=TransactionType.INCOME,
                category=Category.SALES,
            )

    def test_transaction_rejects_empty_description(self):
        """Test that a blank description is rejected."""
        with pytest.raises(ValidationError):
            Transaction(
                description="   ",
                amount=Decimal("10"),
                type=TransactionType.INCOME,
                category=Category.SALES,
            )

    def test_product_link_requires_quantity(self):
        """Quantity is required when a product is linked."""
        with pytest.raises(ValidationError):
            Transaction(
                description="Sale",
                amount=Decimal("10"),
                type=TransactionType.INCOME,
                category=Category.SALES,
                product_id=uuid4(),
            )

    def test_quantity_without_product_rejected(self):
        """Quantity is only allowed when a product is linked."""
        with pytest.raises(ValidationError):
            Transaction(
                description="Sale",
                amount=Decimal("10"),
                type=TransactionType.INCOME,
                category=Category.SALES,
                quantity=Decimal("2"),
            )

    def test_linked_transaction_affects_stock(self):
        """Test affects_stock for a product-linked transaction."""
        tx = Transaction(
            description="Sale",
            amount=Decimal("10"),
            type=TransactionType.INCOME,
            category=Category.SALES,
            product_id=uuid4(),
            quantity=Decimal("2"),
        )
        assert tx.affects_stock is True

    def test_transaction_json_round_trip(self):
        """A transaction survives JSON serialization unchanged."""
        tx = Transaction(
            description="Sale",
            amount=Decimal("20000.00"),
            type=TransactionType.INCOME,
            category=Category.SALES,
            product_id=uuid4(),
            product_name="Widget",
            quantity=Decimal("2"),
        )
        restored = Transaction.model_validate(tx.model_dump(mode="json"))
        assert restored == tx

    def test_draft_defaults(self):
        """A fresh draft is a blank income entry."""
        draft = TransactionDraft()
        assert draft.type == TransactionType.INCOME
        assert draft.amount is None
        assert draft.category is None


class TestCategories:
    """Tests for the category enum."""

    def test_every_category_has_label(self):
        """Every category has a display label."""
        for category in Category:
            assert category.label

    def test_category_values(self):
        """Test category string values."""
        assert Category.SALES.value == "sales"
        assert Category.INVENTORY_PURCHASE.value == "inventory_purchase"
        assert Category("cost_of_goods") == Category.COST_OF_GOODS


class TestRiskModels:
    """Tests for risk assessment models."""

    def test_anomaly_normalizes_severity(self):
        """Severity is accepted case-insensitively."""
        anomaly = RiskAnomaly(severity=" high ", description="d", recommendation="r")
        assert anomaly.severity == RiskSeverity.HIGH

    def test_anomaly_blank_transaction_id(self):
        """An empty transaction id means 'not tied to a transaction'."""
        anomaly = RiskAnomaly(
            severity="LOW", description="d", recommendation="r", transaction_id=""
        )
        assert anomaly.transaction_id is None

    def test_assessment_score_bounds(self):
        """Scores outside 0..100 are rejected."""
        with pytest.raises(ValidationError):
            RiskAssessment(overall_score=101)
        with pytest.raises(ValidationError):
            RiskAssessment(overall_score=-1)

    def test_high_severity_count(self):
        """Test high_severity_count property."""
        assessment = RiskAssessment(
            overall_score=70,
            anomalies=[
                RiskAnomaly(severity="HIGH", description="a", recommendation="x"),
                RiskAnomaly(severity="LOW", description="b", recommendation="y"),
                RiskAnomaly(severity="HIGH", description="c", recommendation="z"),
            ],
        )
        assert assessment.high_severity_count == 2


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            description="Ledger loaded",
        )
        assert event.event_type == AuditEventType.LEDGER_LOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.PRODUCT_ADDED,
            description="Product added",
            details={"name": "Widget"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "product_added"
        assert log_dict["details"]["name"] == "Widget"

    def test_audit_event_builder_transaction_recorded(self):
        """Test AuditEventBuilder.transaction_recorded."""
        tx_id = uuid4()
        event = AuditEventBuilder.transaction_recorded(
            transaction_id=tx_id,
            transaction_type="INCOME",
            amount="150000",
            category="sales",
            user="Owner",
        )
        assert event.event_type == AuditEventType.TRANSACTION_RECORDED
        assert event.entity_id == tx_id
        assert event.correlation_id == tx_id
        assert event.is_user_action is True

    def test_audit_event_builder_stock_adjusted(self):
        """Stock adjustments are correlated with their transaction."""
        product_id = uuid4()
        tx_id = uuid4()
        event = AuditEventBuilder.stock_adjusted(
            product_id=product_id,
            product_name="Widget",
            stock_before=Decimal("10"),
            stock_after=Decimal("8"),
            transaction_id=tx_id,
        )
        assert event.entity_id == product_id
        assert event.correlation_id == tx_id
        assert event.details["stock_after"] == "8"
        assert event.details["reversal"] is False

    def test_audit_event_builder_persist_failed(self):
        """Persistence failures are error-level events."""
        event = AuditEventBuilder.persist_failed("products", "disk full")
        assert event.severity == AuditSeverity.ERROR
        assert event.details["key"] == "products"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.is_valid is False

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            issues=[
                ValidationIssue(
                    field="category",
                    issue_type="inconsistent",
                    message="Unusual category",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert len(result.warnings) == 1

    def test_issue_severity_is_restricted(self):
        """Unknown severities are rejected."""
        with pytest.raises(ValidationError):
            ValidationIssue(
                field="amount",
                issue_type="missing",
                message="x",
                severity="fatal",
            )


class TestProfitAndLossStatement:
    """Tests for the P&L model."""

    def test_is_loss(self):
        """Negative net profit is a loss."""
        assert ProfitAndLossStatement(net_profit=Decimal("-1")).is_loss is True
        assert ProfitAndLossStatement(net_profit=Decimal("0")).is_loss is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
