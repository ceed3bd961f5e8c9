"""
Core Ledger Models for Ledgerbook

These models define the strict schemas for the three ledger collections
(transactions, products, contacts) and the summaries derived from them.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be JSON-serializable for key-value storage
4. Support the audit trail

DESIGN DECISION: All money is Decimal, never float.
Repeated addition of fractional currency values in binary floating point
drifts; Decimal keeps totals exact to the cent.

DESIGN DECISION: contact_name / product_name on a Transaction are SNAPSHOTS.
They are captured once when the transaction is created and are never
re-derived from the live Contact/Product. Renaming or deleting a contact
does not rewrite history.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money flow."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Category(str, Enum):
    """
    Accounting categories.

    DESIGN DECISION: Using explicit categories rather than free text ensures
    consistent grouping in the profit-and-loss statement.
    Categories are not tied to a transaction type; the UI only suggests
    sensible defaults.
    """
    SALES = "sales"
    SERVICE = "service"
    OTHER_INCOME = "other_income"
    COST_OF_GOODS = "cost_of_goods"
    OPERATIONAL = "operational"
    SALARY = "salary"
    MARKETING = "marketing"
    OTHER_EXPENSE = "other_expense"
    INVENTORY_PURCHASE = "inventory_purchase"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    Category.SALES: "Sales",
    Category.SERVICE: "Services",
    Category.OTHER_INCOME: "Other Income",
    Category.COST_OF_GOODS: "Cost of Goods (Raw Materials)",
    Category.OPERATIONAL: "Operational",
    Category.SALARY: "Employee Salaries",
    Category.MARKETING: "Marketing",
    Category.OTHER_EXPENSE: "Other Expenses",
    Category.INVENTORY_PURCHASE: "Inventory Purchase",
}


class ContactRole(str, Enum):
    """Role of a contact in the business."""
    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"
    EMPLOYEE = "EMPLOYEE"


# =============================================================================
# MASTER DATA
# =============================================================================

class Product(BaseModel):
    """
    An inventory record.

    NOTE: stock is allowed to go negative. Negative stock means a sale was
    recorded without the matching purchase - it is an anomaly signal for
    risk analysis, not a validation error.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Product name"
    )
    category: str = Field(
        default="",
        max_length=100,
        description="Free-text product category"
    )
    unit: str = Field(
        default="Pcs",
        max_length=20,
        description="Unit of measurement (e.g. Pcs, kg, box)"
    )
    stock: Decimal = Field(
        default=Decimal("0"),
        description="Units on hand (may be negative)"
    )
    price: Annotated[
        Decimal,
        Field(ge=0, decimal_places=2, description="Selling price per unit")
    ] = Decimal("0")
    cost: Annotated[
        Decimal,
        Field(ge=0, decimal_places=2, description="Acquisition cost per unit")
    ] = Decimal("0")

    @property
    def margin(self) -> Decimal:
        """Selling price minus acquisition cost, per unit."""
        return self.price - self.cost


class Contact(BaseModel):
    """A customer, supplier or employee."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Contact name"
    )
    role: ContactRole = Field(
        default=ContactRole.CUSTOMER,
        description="Customer, supplier or employee"
    )
    phone: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Phone number"
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A recorded income or expense.

    CRITICAL: Transactions are immutable once recorded. The only lifecycle
    operation after creation is deletion.

    contact_id / product_id are WEAK references - they may point at records
    that have since been deleted. Every lookup must tolerate "not found".
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    date: datetime = Field(
        default_factory=utc_now,
        description="When the transaction was recorded (UTC)"
    )

    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="What the transaction was for"
    )
    amount: Annotated[
        Decimal,
        Field(ge=0, decimal_places=2, description="Transaction amount")
    ]
    type: TransactionType
    category: Category
    user: str = Field(
        default="Owner",
        max_length=100,
        description="Who recorded this transaction"
    )

    # Integration fields
    contact_id: Optional[UUID] = None
    contact_name: Optional[str] = Field(
        default=None,
        description="Snapshot of the contact's name at creation time"
    )
    product_id: Optional[UUID] = None
    product_name: Optional[str] = Field(
        default=None,
        description="Snapshot of the product's name at creation time"
    )
    quantity: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Units sold or purchased (only with a product)"
    )

    @model_validator(mode='after')
    def validate_product_link(self) -> 'Transaction':
        """Quantity is present if and only if a product is linked."""
        if self.product_id is not None and self.quantity is None:
            raise ValueError("Quantity is required when a product is linked")
        if self.product_id is None and self.quantity is not None:
            raise ValueError("Quantity is only allowed when a product is linked")
        return self

    @property
    def affects_stock(self) -> bool:
        return self.product_id is not None and self.quantity is not None

    @property
    def signed_amount(self) -> Decimal:
        """Amount with sign: positive for income, negative for expense."""
        return self.amount if self.type == TransactionType.INCOME else -self.amount


class TransactionDraft(BaseModel):
    """
    Raw transaction input, as entered in the form.

    This is PROPOSED data. Blank fields are filled with defaults by
    ledger.entry.build_transaction and the result is validated before a
    Transaction is created. Nothing here is trusted yet.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    type: TransactionType = TransactionType.INCOME
    description: str = ""
    amount: Optional[Decimal] = Field(
        default=None,
        description="Leave blank to compute from the product's price/cost"
    )
    category: Optional[Category] = None
    contact_id: Optional[UUID] = None
    product_id: Optional[UUID] = None
    quantity: Optional[Decimal] = None


# =============================================================================
# DERIVED REPORTS
# =============================================================================

class FinancialSummary(BaseModel):
    """Headline figures for the dashboard and the strategy prompt."""

    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    net_profit: Decimal = Decimal("0")
    transaction_count: int = Field(default=0, ge=0)


class ProfitAndLossStatement(BaseModel):
    """
    Profit-and-loss statement over the whole ledger.

    Category breakdowns only contain categories that actually have
    transactions - there are no zero-valued rows.
    """

    income_by_category: dict[Category, Decimal] = Field(default_factory=dict)
    expense_by_category: dict[Category, Decimal] = Field(default_factory=dict)
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    net_profit: Decimal = Decimal("0")
    generated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_loss(self) -> bool:
        return self.net_profit < 0


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found at the input boundary."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating user input.

    Errors block the record from reaching the ledger.
    Warnings are shown to the user but do not block.
    """

    validated_at: datetime = Field(default_factory=utc_now)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]
