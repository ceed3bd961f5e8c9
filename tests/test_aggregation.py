"""Tests for the aggregation engine."""

import pytest
from decimal import Decimal

from ledgerbook.models.ledger import (
    Category,
    Contact,
    ContactRole,
    Product,
    TransactionType,
)
from ledgerbook.reports.aggregation import (
    chart_series,
    contacts_for_type,
    group_by_category,
    low_stock_items,
    net_profit,
    profit_and_loss,
    recent_transactions,
    search_transactions,
    summarize,
    total_by_type,
    total_stock_value,
)

from conftest import make_transaction


@pytest.fixture
def ledger():
    return [
        make_transaction("1000.00", category=Category.SALES, description="Sale A", day=0),
        make_transaction("250.50", category=Category.SERVICE, description="Repair", day=1),
        make_transaction(
            "400.00",
            transaction_type=TransactionType.EXPENSE,
            category=Category.SALARY,
            description="Wages",
            day=2,
        ),
        make_transaction("500.00", category=Category.SALES, description="Sale B", day=3),
        make_transaction(
            "100.25",
            transaction_type=TransactionType.EXPENSE,
            category=Category.OPERATIONAL,
            description="Electricity",
            day=4,
            contact_name="PLN",
        ),
    ]


class TestTotals:
    """Tests for totals and net profit."""

    def test_empty_ledger_totals_are_zero(self):
        """All totals are zero for an empty ledger."""
        assert total_by_type([], TransactionType.INCOME) == Decimal("0")
        assert net_profit([]) == Decimal("0")

    def test_total_by_type(self, ledger):
        """Test income and expense totals."""
        assert total_by_type(ledger, TransactionType.INCOME) == Decimal("1750.50")
        assert total_by_type(ledger, TransactionType.EXPENSE) == Decimal("500.25")

    def test_net_profit_is_income_minus_expense(self, ledger):
        """Net profit identity holds exactly."""
        assert net_profit(ledger) == (
            total_by_type(ledger, TransactionType.INCOME)
            - total_by_type(ledger, TransactionType.EXPENSE)
        )
        assert net_profit(ledger) == Decimal("1250.25")

    def test_net_profit_can_be_negative(self):
        """Losses are reported as negative net profit."""
        ledger = [make_transaction("50.00", transaction_type=TransactionType.EXPENSE)]
        assert net_profit(ledger) == Decimal("-50.00")

    def test_decimal_sums_do_not_drift(self):
        """Ten times 0.10 is exactly 1.00."""
        ledger = [make_transaction("0.10") for _ in range(10)]
        assert total_by_type(ledger, TransactionType.INCOME) == Decimal("1.00")

    def test_summarize(self, ledger):
        """Test the dashboard summary."""
        summary = summarize(ledger)
        assert summary.total_income == Decimal("1750.50")
        assert summary.total_expense == Decimal("500.25")
        assert summary.net_profit == Decimal("1250.25")
        assert summary.transaction_count == 5


class TestGroupByCategory:
    """Tests for per-category grouping."""

    def test_groups_sum_to_total(self, ledger):
        """The groups of a type add up to that type's total."""
        for transaction_type in TransactionType:
            groups = group_by_category(ledger, transaction_type)
            assert sum(groups.values(), Decimal("0")) == total_by_type(ledger, transaction_type)

    def test_no_zero_rows(self, ledger):
        """Only categories with transactions appear."""
        groups = group_by_category(ledger, TransactionType.INCOME)
        assert set(groups) == {Category.SALES, Category.SERVICE}
        assert groups[Category.SALES] == Decimal("1500.00")

    def test_first_seen_order(self, ledger):
        """Keys follow the order categories first appear."""
        groups = group_by_category(ledger, TransactionType.EXPENSE)
        assert list(groups) == [Category.SALARY, Category.OPERATIONAL]

    def test_profit_and_loss(self, ledger):
        """The P&L statement agrees with the totals."""
        statement = profit_and_loss(ledger)
        assert statement.total_income == Decimal("1750.50")
        assert statement.expense_by_category[Category.SALARY] == Decimal("400.00")
        assert statement.net_profit == Decimal("1250.25")
        assert statement.is_loss is False


class TestInventoryFigures:
    """Tests for low stock and stock value."""

    def test_low_stock_includes_threshold_and_negative(self):
        """Stock at or below the threshold (negative included) is low."""
        products = [
            Product(name=f"P{stock}", stock=Decimal(stock))
            for stock in ("3", "5", "6", "-1")
        ]
        low = low_stock_items(products, threshold=5)
        assert [p.stock for p in low] == [Decimal("3"), Decimal("5"), Decimal("-1")]

    def test_stock_value_uses_cost(self):
        """Inventory is valued at acquisition cost."""
        products = [
            Product(name="A", stock=Decimal("10"), cost=Decimal("2.50"), price=Decimal("4")),
            Product(name="B", stock=Decimal("-2"), cost=Decimal("10"), price=Decimal("15")),
        ]
        assert total_stock_value(products) == Decimal("5.00")

    def test_empty_inventory(self):
        """Empty inventory has no low stock and zero value."""
        assert low_stock_items([]) == []
        assert total_stock_value([]) == Decimal("0")


class TestRecentAndSearch:
    """Tests for recency ordering, search and chart data."""

    def test_recent_is_newest_first(self, ledger):
        """Most recent transactions come first."""
        recent = recent_transactions(ledger, limit=2)
        assert [t.description for t in recent] == ["Electricity", "Sale B"]

    def test_recent_limit_larger_than_ledger(self, ledger):
        """A large limit returns everything."""
        assert len(recent_transactions(ledger, limit=100)) == 5

    def test_recent_ties_keep_ledger_order(self):
        """Identical timestamps keep insertion order."""
        first = make_transaction(description="first")
        second = make_transaction(description="second")
        assert recent_transactions([first, second]) == [first, second]

    def test_search_by_description(self, ledger):
        """Search is case-insensitive."""
        results = search_transactions(ledger, "sale")
        assert [t.description for t in results] == ["Sale B", "Sale A"]

    def test_search_by_category_label(self, ledger):
        """Category labels are searchable."""
        results = search_transactions(ledger, "salaries")
        assert [t.description for t in results] == ["Wages"]

    def test_search_by_contact_name(self, ledger):
        """Contact names are searchable."""
        assert [t.description for t in search_transactions(ledger, "pln")] == ["Electricity"]

    def test_empty_search_returns_all(self, ledger):
        """An empty term matches everything."""
        assert len(search_transactions(ledger, "  ")) == 5

    def test_chart_series_takes_last_entries(self, ledger):
        """The chart shows the last N transactions in ledger order."""
        series = chart_series(ledger, limit=2)
        assert [point["index"] for point in series] == [1, 2]
        assert series[0]["description"] == "Sale B"
        assert series[1]["type"] == "EXPENSE"
        assert series[1]["amount"] == pytest.approx(100.25)

    def test_contacts_for_type(self):
        """Customers for income, suppliers for expense."""
        contacts = [
            Contact(name="Budi", role=ContactRole.CUSTOMER),
            Contact(name="PT Sumber", role=ContactRole.SUPPLIER),
        ]
        assert [c.name for c in contacts_for_type(contacts, TransactionType.INCOME)] == ["Budi"]
        assert [c.name for c in contacts_for_type(contacts, TransactionType.EXPENSE)] == ["PT Sumber"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
