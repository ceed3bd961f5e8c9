"""
Inventory Reconciler

Keeps Product.stock consistent with the transaction ledger:

    stock = initial stock
            - quantities of linked INCOME transactions   (sales consume stock)
            + quantities of linked EXPENSE transactions  (purchases replenish it)

RULES:
1. A transaction without product_id/quantity has no stock effect.
2. Stock is NOT clamped at zero. Negative stock is an anomaly signal
   for risk analysis, not something the reconciler prevents.
3. A transaction whose product no longer exists is recorded anyway;
   the stock effect is skipped and logged, never raised.
4. reverse_transaction_effect is the exact inverse of
   apply_transaction_effect: applying then reversing is a no-op.

All functions are pure: they return new Product objects and never mutate
their inputs. The Ledger Store decides what to keep.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from ledgerbook.models.ledger import Product, Transaction, TransactionType


logger = structlog.get_logger(__name__)


def stock_delta(transaction: Transaction) -> Decimal:
    """
    Signed stock change a transaction causes.

    Zero for transactions that are not linked to a product.
    """
    if not transaction.affects_stock:
        return Decimal("0")
    if transaction.type == TransactionType.INCOME:
        return -transaction.quantity
    return transaction.quantity


def _with_delta(product: Product, transaction: Transaction, delta: Decimal) -> Product:
    if not transaction.affects_stock or transaction.product_id != product.id:
        return product
    return product.model_copy(update={"stock": product.stock + delta})


def apply_transaction_effect(product: Product, transaction: Transaction) -> Product:
    """
    Apply a transaction's stock effect to a product snapshot.

    Returns the product unchanged when the transaction has no product link
    or refers to a different product.
    """
    return _with_delta(product, transaction, stock_delta(transaction))


def reverse_transaction_effect(product: Product, transaction: Transaction) -> Product:
    """Undo apply_transaction_effect (used when a transaction is deleted)."""
    return _with_delta(product, transaction, -stock_delta(transaction))


def _find_index(products: list[Product], product_id: Optional[UUID]) -> Optional[int]:
    for idx, product in enumerate(products):
        if product.id == product_id:
            return idx
    return None


def _reconcile(
    products: list[Product],
    transaction: Transaction,
    reversal: bool,
) -> tuple[list[Product], bool]:
    if not transaction.affects_stock:
        return list(products), False

    idx = _find_index(products, transaction.product_id)
    if idx is None:
        logger.warning(
            "reconciliation_skipped",
            reason="product_not_found",
            product_id=str(transaction.product_id),
            transaction_id=str(transaction.id),
            reversal=reversal,
        )
        return list(products), False

    updated = list(products)
    if reversal:
        updated[idx] = reverse_transaction_effect(products[idx], transaction)
    else:
        updated[idx] = apply_transaction_effect(products[idx], transaction)
    return updated, True


def apply_to_inventory(
    products: list[Product],
    transaction: Transaction,
) -> tuple[list[Product], bool]:
    """
    Apply a newly recorded transaction to the inventory.

    Returns:
        (updated_products, applied)
        applied is False when there was nothing to reconcile
        (no product link, or the product no longer exists).
    """
    return _reconcile(products, transaction, reversal=False)


def reverse_in_inventory(
    products: list[Product],
    transaction: Transaction,
) -> tuple[list[Product], bool]:
    """Reverse a deleted transaction's effect on the inventory."""
    return _reconcile(products, transaction, reversal=True)
