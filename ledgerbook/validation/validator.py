"""
Input-Boundary Validation

DESIGN DECISION: The ledger core never sees invalid records.
Everything the user types is validated here first, and a rejected record
never reaches the Ledger Store.

Validation reports two kinds of issues:

ERRORS (block the record):
- Empty description
- Missing or negative amount
- Non-positive quantity
- Linked product that no longer exists

WARNINGS (shown, but the user may proceed):
- Linked contact that no longer exists
- Contact role that doesn't fit the transaction (e.g. a supplier on a sale)
- Category that normally belongs to the other transaction type
- Implausibly large amount
- Product priced at or below its cost

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to review.
"""

from decimal import Decimal
from typing import Iterable, Optional

from ledgerbook.config import get_settings
from ledgerbook.models.ledger import (
    Category,
    Contact,
    ContactRole,
    Product,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


INCOME_CATEGORIES = frozenset({
    Category.SALES,
    Category.SERVICE,
    Category.OTHER_INCOME,
})

EXPENSE_CATEGORIES = frozenset(set(Category) - INCOME_CATEGORIES)


class LedgerValidationError(Exception):
    """Input was rejected at the boundary. Carries the full result."""

    def __init__(self, result: ValidationResult, message: Optional[str] = None):
        self.result = result
        errors = [i.message for i in result.issues if i.severity == "error"]
        super().__init__(message or "; ".join(errors) or "Validation failed")


class TransactionValidationError(LedgerValidationError):
    """A transaction draft could not be turned into a Transaction."""
    pass


class ProductValidationError(LedgerValidationError):
    """A product record was rejected."""
    pass


class ContactValidationError(LedgerValidationError):
    """A contact record was rejected."""
    pass


class TransactionValidator:
    """
    Validates a (defaults-resolved) transaction draft.

    The draft is checked against the live product and contact lists
    because the links are resolved at this point.
    """

    def __init__(self, max_amount: Optional[Decimal] = None):
        if max_amount is None:
            max_amount = Decimal(str(get_settings().app.max_transaction_amount))
        self._max_amount = max_amount

    def validate(
        self,
        draft: TransactionDraft,
        products: Iterable[Product],
        contacts: Iterable[Contact],
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []

        if not draft.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
                suggested_fix="Describe what the transaction was for",
            ))

        issues.extend(self._check_amount(draft))
        issues.extend(self._check_product(draft, products))
        issues.extend(self._check_contact(draft, contacts))

        if draft.category is not None:
            expected = INCOME_CATEGORIES if draft.type == TransactionType.INCOME else EXPENSE_CATEGORIES
            if draft.category not in expected:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="inconsistent",
                    message=(
                        f"Category '{draft.category.label}' is unusual for "
                        f"{draft.type.value.lower()} transactions"
                    ),
                    severity="warning",
                    suggested_fix="Double-check the category",
                ))

        return ValidationResult(issues=issues)

    def _check_amount(self, draft: TransactionDraft) -> list[ValidationIssue]:
        if draft.amount is None:
            return [ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
                suggested_fix="Enter an amount, or pick a product to compute it",
            )]

        if not draft.amount.is_finite():
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a number",
                severity="error",
            )]

        issues = []
        if draft.amount < 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount cannot be negative",
                severity="error",
                suggested_fix="Use the transaction type to record money going out",
            ))
        elif draft.amount.as_tuple().exponent < -2:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount can have at most 2 decimal places",
                severity="error",
            ))
        elif draft.amount > self._max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({draft.amount:,}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))
        return issues

    def _check_product(
        self,
        draft: TransactionDraft,
        products: Iterable[Product],
    ) -> list[ValidationIssue]:
        if draft.product_id is None:
            return []

        issues = []
        if not any(p.id == draft.product_id for p in products):
            issues.append(ValidationIssue(
                field="product_id",
                issue_type="not_found",
                message="The selected product no longer exists",
                severity="error",
                suggested_fix="Pick another product or clear the selection",
            ))

        if draft.quantity is None or not draft.quantity.is_finite() or draft.quantity <= 0:
            issues.append(ValidationIssue(
                field="quantity",
                issue_type="invalid_value",
                message="Quantity must be greater than zero",
                severity="error",
            ))
        return issues

    def _check_contact(
        self,
        draft: TransactionDraft,
        contacts: Iterable[Contact],
    ) -> list[ValidationIssue]:
        if draft.contact_id is None:
            return []

        contact = next((c for c in contacts if c.id == draft.contact_id), None)
        if contact is None:
            return [ValidationIssue(
                field="contact_id",
                issue_type="not_found",
                message="The selected contact no longer exists",
                severity="warning",
                suggested_fix="The transaction will be recorded without a contact name",
            )]

        mismatched = (
            (draft.type == TransactionType.INCOME and contact.role == ContactRole.SUPPLIER)
            or (draft.type == TransactionType.EXPENSE and contact.role == ContactRole.CUSTOMER)
        )
        if mismatched:
            return [ValidationIssue(
                field="contact_id",
                issue_type="inconsistent",
                message=(
                    f"{contact.name} is a {contact.role.value.lower()}, which is unusual "
                    f"for {draft.type.value.lower()} transactions"
                ),
                severity="warning",
            )]
        return []


class ProductValidator:
    """Semantic checks for a new product."""

    def validate(
        self,
        product: Product,
        existing: Iterable[Product] = (),
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []

        if product.price > 0 and product.price <= product.cost:
            issues.append(ValidationIssue(
                field="price",
                issue_type="suspicious_value",
                message=(
                    f"Selling price ({product.price:,}) is not above cost "
                    f"({product.cost:,}); every sale loses money"
                ),
                severity="warning",
                suggested_fix="Check the price and cost",
            ))

        if product.stock < 0:
            issues.append(ValidationIssue(
                field="stock",
                issue_type="suspicious_value",
                message="Initial stock is negative",
                severity="warning",
            ))

        name = product.name.lower()
        if any(p.name.lower() == name for p in existing):
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=f"A product named '{product.name}' already exists",
                severity="warning",
            ))

        return ValidationResult(issues=issues)


class ContactValidator:
    """Semantic checks for a new contact."""

    def validate(
        self,
        contact: Contact,
        existing: Iterable[Contact] = (),
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []

        name = contact.name.lower()
        if any(c.name.lower() == name and c.role == contact.role for c in existing):
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=f"A {contact.role.value.lower()} named '{contact.name}' already exists",
                severity="warning",
            ))

        if contact.phone and not any(ch.isdigit() for ch in contact.phone):
            issues.append(ValidationIssue(
                field="phone",
                issue_type="invalid_format",
                message="Phone number contains no digits",
                severity="error",
            ))

        return ValidationResult(issues=issues)


def get_user_friendly_summary(result: ValidationResult) -> str:
    """Short message suitable for the UI."""
    if not result.issues:
        return "All details look good."

    lines = []
    for issue in result.issues:
        prefix = "Error" if issue.severity == "error" else "Note"
        line = f"{prefix}: {issue.message}"
        if issue.suggested_fix:
            line += f" ({issue.suggested_fix})"
        lines.append(line)
    return "\n".join(lines)
