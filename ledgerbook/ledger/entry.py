"""
Transaction Drafting

Turns raw form input (TransactionDraft) into an immutable Transaction.

When a product is selected the form behaves like a point-of-sale entry:
- quantity defaults to 1
- category defaults to Sales (income) or Inventory Purchase (expense)
- a blank description becomes "Sale of <product> (<qty> <unit>)" or
  "Stock purchase of <product> (<qty> <unit>)"
- a BLANK amount is computed as unit price (income) or unit cost (expense)
  times quantity. An amount the user typed is always kept as-is.

Contact and product names are snapshotted here, once. They are not kept
in sync with later edits to the contact or product.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from ledgerbook.models.ledger import (
    Category,
    Contact,
    Product,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationResult,
)
from ledgerbook.validation import TransactionValidationError, TransactionValidator


CENT = Decimal("0.01")


def default_category(transaction_type: TransactionType, has_product: bool) -> Category:
    if transaction_type == TransactionType.INCOME:
        return Category.SALES
    if has_product:
        return Category.INVENTORY_PURCHASE
    return Category.OPERATIONAL


def suggested_amount(
    product: Product,
    transaction_type: TransactionType,
    quantity: Decimal,
) -> Decimal:
    """Unit price (sale) or unit cost (purchase) times quantity, rounded to cents."""
    unit_value = product.price if transaction_type == TransactionType.INCOME else product.cost
    return (unit_value * quantity).quantize(CENT, rounding=ROUND_HALF_UP)


def suggested_description(
    product: Product,
    transaction_type: TransactionType,
    quantity: Decimal,
) -> str:
    qty = f"{quantity.normalize():f}"
    if transaction_type == TransactionType.INCOME:
        return f"Sale of {product.name} ({qty} {product.unit})"
    return f"Stock purchase of {product.name} ({qty} {product.unit})"


def resolve_draft(
    draft: TransactionDraft,
    products: Iterable[Product],
) -> TransactionDraft:
    """
    Fill blank fields with their defaults.

    Returns a new draft; the input is not modified. Fields the user
    filled in are never overwritten.
    """
    product = _find(products, draft.product_id)
    updates: dict = {}

    if draft.product_id is None:
        # Quantity only means something with a product
        updates["quantity"] = None
    elif draft.quantity is None:
        updates["quantity"] = Decimal("1")
    quantity = updates.get("quantity", draft.quantity)

    if draft.category is None:
        updates["category"] = default_category(draft.type, draft.product_id is not None)

    if product is not None and quantity is not None and quantity > 0:
        if draft.amount is None:
            amount = suggested_amount(product, draft.type, quantity)
            if amount > 0:
                updates["amount"] = amount
        if not draft.description:
            updates["description"] = suggested_description(product, draft.type, quantity)

    return draft.model_copy(update=updates)


def build_transaction(
    draft: TransactionDraft,
    products: Iterable[Product],
    contacts: Iterable[Contact],
    user: str = "Owner",
    validator: Optional[TransactionValidator] = None,
) -> tuple[Transaction, ValidationResult]:
    """
    Resolve defaults, validate, and create the Transaction.

    Returns:
        (transaction, validation_result) - the result may hold warnings

    Raises:
        TransactionValidationError: if any error-level issue was found
    """
    products = list(products)
    contacts = list(contacts)
    validator = validator or TransactionValidator()

    resolved = resolve_draft(draft, products)
    result = validator.validate(resolved, products, contacts)
    if result.has_errors:
        raise TransactionValidationError(result)

    product = _find(products, resolved.product_id)
    contact = _find(contacts, resolved.contact_id)

    transaction = Transaction(
        description=resolved.description,
        amount=resolved.amount,
        type=resolved.type,
        category=resolved.category,
        user=user,
        contact_id=resolved.contact_id,
        contact_name=contact.name if contact else None,
        product_id=resolved.product_id,
        product_name=product.name if product else None,
        quantity=resolved.quantity,
    )
    return transaction, result


def _find(records, record_id):
    if record_id is None:
        return None
    for record in records:
        if record.id == record_id:
            return record
    return None
