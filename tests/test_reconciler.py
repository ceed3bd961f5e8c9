"""Tests for the inventory reconciler."""

import pytest
from decimal import Decimal
from uuid import uuid4

from ledgerbook.ledger.reconciler import (
    apply_to_inventory,
    apply_transaction_effect,
    reverse_in_inventory,
    reverse_transaction_effect,
    stock_delta,
)
from ledgerbook.models.ledger import Category, Product, TransactionType

from conftest import make_transaction


def sale(product: Product, quantity: str):
    return make_transaction(
        amount="1.00",
        product_id=product.id,
        product_name=product.name,
        quantity=Decimal(quantity),
    )


def purchase(product: Product, quantity: str):
    return make_transaction(
        amount="1.00",
        transaction_type=TransactionType.EXPENSE,
        category=Category.INVENTORY_PURCHASE,
        product_id=product.id,
        product_name=product.name,
        quantity=Decimal(quantity),
    )


class TestStockDelta:
    """Tests for the signed stock change of a transaction."""

    def test_sale_consumes_stock(self, widget):
        """Income linked to a product reduces stock."""
        assert stock_delta(sale(widget, "2")) == Decimal("-2")

    def test_purchase_replenishes_stock(self, widget):
        """Expense linked to a product increases stock."""
        assert stock_delta(purchase(widget, "5")) == Decimal("5")

    def test_unlinked_transaction_has_no_effect(self):
        """Transactions without a product do not touch stock."""
        assert stock_delta(make_transaction()) == Decimal("0")


class TestTransactionEffect:
    """Tests for applying and reversing a single transaction."""

    def test_sale_of_two_from_ten_leaves_eight(self, widget):
        """Selling 2 of 10 units leaves 8."""
        updated = apply_transaction_effect(widget, sale(widget, "2"))
        assert updated.stock == Decimal("8")

    def test_input_product_is_not_mutated(self, widget):
        """The reconciler returns new products."""
        apply_transaction_effect(widget, sale(widget, "2"))
        assert widget.stock == Decimal("10")

    def test_stock_can_go_negative(self, widget):
        """Overselling is allowed; stock is not clamped at zero."""
        updated = apply_transaction_effect(widget, sale(widget, "12"))
        assert updated.stock == Decimal("-2")

    def test_apply_then_reverse_is_identity(self, widget):
        """Reversal is the exact inverse of application."""
        for tx in (sale(widget, "3"), purchase(widget, "7.5")):
            restored = reverse_transaction_effect(apply_transaction_effect(widget, tx), tx)
            assert restored.stock == widget.stock

    def test_other_product_is_untouched(self, widget):
        """A transaction only affects the product it references."""
        other = Product(name="Gadget", stock=Decimal("4"))
        assert apply_transaction_effect(other, sale(widget, "2")) is other


class TestInventoryReconciliation:
    """Tests for reconciling a transaction against the product list."""

    def test_apply_updates_matching_product(self, widget):
        """Only the referenced product changes."""
        other = Product(name="Gadget", stock=Decimal("4"))
        updated, applied = apply_to_inventory([other, widget], purchase(widget, "5"))
        assert applied is True
        assert updated[0] is other
        assert updated[1].stock == Decimal("15")

    def test_missing_product_is_skipped(self, widget):
        """A dangling product reference is a no-op, not an error."""
        tx = make_transaction(product_id=uuid4(), quantity=Decimal("1"))
        updated, applied = apply_to_inventory([widget], tx)
        assert applied is False
        assert updated == [widget]

    def test_unlinked_transaction_not_applied(self, widget):
        """Transactions without a product report nothing applied."""
        _, applied = apply_to_inventory([widget], make_transaction())
        assert applied is False

    def test_reverse_restores_stock(self, widget):
        """Deleting a sale puts the units back."""
        tx = sale(widget, "4")
        products, _ = apply_to_inventory([widget], tx)
        products, applied = reverse_in_inventory(products, tx)
        assert applied is True
        assert products[0].stock == Decimal("10")

    def test_input_list_is_not_mutated(self, widget):
        """The caller's list is left as it was."""
        products = [widget]
        apply_to_inventory(products, sale(widget, "1"))
        assert products[0] is widget


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
