"""Tests for transaction drafting and input validation."""

import pytest
from decimal import Decimal
from uuid import uuid4

from ledgerbook.ledger.entry import (
    build_transaction,
    default_category,
    resolve_draft,
    suggested_amount,
)
from ledgerbook.models.ledger import (
    Category,
    Contact,
    ContactRole,
    Product,
    TransactionDraft,
    TransactionType,
)
from ledgerbook.validation import (
    ContactValidator,
    ProductValidator,
    TransactionValidationError,
    TransactionValidator,
    get_user_friendly_summary,
)


@pytest.fixture
def validator():
    return TransactionValidator(max_amount=Decimal("1000000"))


class TestDraftDefaults:
    """Tests for filling in blank draft fields."""

    def test_default_categories(self):
        """Sales for income, inventory purchase for product expenses."""
        assert default_category(TransactionType.INCOME, True) == Category.SALES
        assert default_category(TransactionType.EXPENSE, True) == Category.INVENTORY_PURCHASE
        assert default_category(TransactionType.EXPENSE, False) == Category.OPERATIONAL

    def test_blank_amount_uses_price_times_quantity(self, widget):
        """A sale of 2 at 10000 is 20000 when the amount is blank."""
        draft = TransactionDraft(product_id=widget.id, quantity=Decimal("2"))
        resolved = resolve_draft(draft, [widget])
        assert resolved.amount == Decimal("20000")
        assert resolved.category == Category.SALES
        assert resolved.description == "Sale of Widget (2 Pcs)"

    def test_purchase_uses_cost(self, widget):
        """Purchases are priced at unit cost."""
        assert suggested_amount(widget, TransactionType.EXPENSE, Decimal("3")) == Decimal("18000.00")

    def test_explicit_amount_is_kept(self, widget):
        """An amount the user typed is never overwritten."""
        draft = TransactionDraft(
            product_id=widget.id,
            quantity=Decimal("2"),
            amount=Decimal("100000"),
        )
        assert resolve_draft(draft, [widget]).amount == Decimal("100000")

    def test_quantity_defaults_to_one(self, widget):
        """Selecting a product without a quantity means one unit."""
        resolved = resolve_draft(TransactionDraft(product_id=widget.id), [widget])
        assert resolved.quantity == Decimal("1")
        assert resolved.amount == Decimal("10000")

    def test_quantity_dropped_without_product(self):
        """Quantity only applies to product-linked transactions."""
        resolved = resolve_draft(TransactionDraft(quantity=Decimal("3")), [])
        assert resolved.quantity is None

    def test_description_kept(self, widget):
        """A typed description is kept."""
        draft = TransactionDraft(product_id=widget.id, description="Bulk order")
        assert resolve_draft(draft, [widget]).description == "Bulk order"

    def test_input_draft_unchanged(self, widget):
        """resolve_draft returns a new draft."""
        draft = TransactionDraft(product_id=widget.id)
        resolve_draft(draft, [widget])
        assert draft.amount is None


class TestBuildTransaction:
    """Tests for turning a draft into a Transaction."""

    def test_builds_linked_sale(self, widget, customer, validator):
        """Names are snapshotted from the linked records."""
        draft = TransactionDraft(
            product_id=widget.id,
            quantity=Decimal("2"),
            contact_id=customer.id,
        )
        tx, result = build_transaction(draft, [widget], [customer], validator=validator)
        assert tx.amount == Decimal("20000")
        assert tx.product_name == "Widget"
        assert tx.contact_name == "Budi"
        assert tx.quantity == Decimal("2")
        assert result.is_valid

    def test_user_is_recorded(self, validator):
        """The author is stored on the transaction."""
        draft = TransactionDraft(description="Tip", amount=Decimal("5"))
        tx, _ = build_transaction(draft, [], [], user="Siti", validator=validator)
        assert tx.user == "Siti"

    def test_missing_amount_rejected(self, validator):
        """A draft without amount or product cannot be saved."""
        with pytest.raises(TransactionValidationError) as exc_info:
            build_transaction(TransactionDraft(description="Mystery"), [], [], validator=validator)
        assert any(i.field == "amount" for i in exc_info.value.result.issues)

    def test_missing_description_rejected(self, validator):
        """A description is required when no product supplies one."""
        with pytest.raises(TransactionValidationError):
            build_transaction(TransactionDraft(amount=Decimal("10")), [], [], validator=validator)

    def test_unknown_product_rejected(self, validator):
        """A product that no longer exists blocks the entry."""
        draft = TransactionDraft(
            description="Sale",
            amount=Decimal("10"),
            product_id=uuid4(),
            quantity=Decimal("1"),
        )
        with pytest.raises(TransactionValidationError):
            build_transaction(draft, [], [], validator=validator)

    def test_unknown_contact_is_warning(self, validator):
        """A missing contact only warns; the name stays empty."""
        draft = TransactionDraft(
            description="Sale",
            amount=Decimal("10"),
            contact_id=uuid4(),
        )
        tx, result = build_transaction(draft, [], [], validator=validator)
        assert tx.contact_name is None
        assert len(result.warnings) == 1


class TestTransactionValidator:
    """Tests for TransactionValidator rules."""

    def test_negative_amount_is_error(self, validator):
        """Negative amounts are errors."""
        draft = TransactionDraft(description="x", amount=Decimal("-1"), category=Category.SALES)
        assert validator.validate(draft, [], []).has_errors

    def test_sub_cent_amount_is_error(self, validator):
        """More than two decimal places is an error."""
        draft = TransactionDraft(description="x", amount=Decimal("1.001"), category=Category.SALES)
        assert validator.validate(draft, [], []).has_errors

    def test_large_amount_is_warning(self, validator):
        """Amounts above the ceiling are flagged, not blocked."""
        draft = TransactionDraft(description="x", amount=Decimal("5000000"), category=Category.SALES)
        result = validator.validate(draft, [], [])
        assert not result.has_errors
        assert result.warnings[0].issue_type == "suspicious_value"

    def test_category_mismatch_is_warning(self, validator):
        """An expense category on income is unusual but allowed."""
        draft = TransactionDraft(
            description="x",
            amount=Decimal("10"),
            category=Category.SALARY,
        )
        result = validator.validate(draft, [], [])
        assert not result.has_errors
        assert result.warnings[0].field == "category"

    def test_supplier_on_sale_is_warning(self, validator, supplier):
        """A supplier on an income transaction is flagged."""
        draft = TransactionDraft(
            description="x",
            amount=Decimal("10"),
            category=Category.SALES,
            contact_id=supplier.id,
        )
        result = validator.validate(draft, [], [supplier])
        assert [w.issue_type for w in result.warnings] == ["inconsistent"]

    def test_zero_quantity_is_error(self, validator, widget):
        """Quantity must be positive."""
        draft = TransactionDraft(
            description="x",
            amount=Decimal("10"),
            category=Category.SALES,
            product_id=widget.id,
            quantity=Decimal("0"),
        )
        assert validator.validate(draft, [widget], []).has_errors


class TestMasterDataValidators:
    """Tests for product and contact validation."""

    def test_price_below_cost_is_warning(self):
        """Selling at or below cost is flagged."""
        product = Product(name="Loss Leader", price=Decimal("5"), cost=Decimal("8"))
        result = ProductValidator().validate(product)
        assert not result.has_errors
        assert result.warnings[0].field == "price"

    def test_duplicate_product_name(self, widget):
        """Duplicate names are flagged case-insensitively."""
        result = ProductValidator().validate(Product(name="WIDGET"), [widget])
        assert any(w.issue_type == "duplicate" for w in result.warnings)

    def test_phone_without_digits_is_error(self):
        """A phone number must contain digits."""
        result = ContactValidator().validate(Contact(name="Ani", phone="n/a"))
        assert result.has_errors

    def test_same_name_different_role_is_fine(self, customer):
        """A customer and a supplier may share a name."""
        contact = Contact(name="Budi", role=ContactRole.SUPPLIER)
        assert ContactValidator().validate(contact, [customer]).issues == []

    def test_user_friendly_summary(self):
        """Test the UI summary text."""
        result = ContactValidator().validate(Contact(name="Ani", phone="n/a"))
        assert get_user_friendly_summary(result).startswith("Error:")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
