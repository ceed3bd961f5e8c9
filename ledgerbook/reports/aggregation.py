"""
Aggregation Engine

DESIGN DECISION: Every figure shown on the dashboard and in the
profit-and-loss statement is recomputed from the current ledger snapshot.
There is no cached total that could drift from the transaction list.

All functions here are pure and DETERMINISTIC. They accept lists of
models and return new values; they never raise for empty collections.
"""

from decimal import Decimal
from typing import Iterable, Optional

from ledgerbook.models.ledger import (
    Category,
    Contact,
    ContactRole,
    FinancialSummary,
    Product,
    ProfitAndLossStatement,
    Transaction,
    TransactionType,
)


ZERO = Decimal("0")

DEFAULT_LOW_STOCK_THRESHOLD = 5


def total_by_type(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
) -> Decimal:
    """Sum of amounts of the given type. 0 for an empty ledger."""
    return sum(
        (t.amount for t in transactions if t.type == transaction_type),
        ZERO,
    )


def net_profit(transactions: Iterable[Transaction]) -> Decimal:
    """Total income minus total expense. May be negative."""
    transactions = list(transactions)
    return (
        total_by_type(transactions, TransactionType.INCOME)
        - total_by_type(transactions, TransactionType.EXPENSE)
    )


def group_by_category(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
) -> dict[Category, Decimal]:
    """
    Sum amounts per category, for one transaction type.

    Categories without transactions are absent (no zero rows).
    Keys appear in the order their category is first seen.
    """
    groups: dict[Category, Decimal] = {}

    for t in transactions:
        if t.type != transaction_type:
            continue
        if t.category not in groups:
            groups[t.category] = ZERO
        groups[t.category] += t.amount

    return groups


def low_stock_items(
    products: Iterable[Product],
    threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> list[Product]:
    """
    Products with stock at or below the threshold, in insertion order.

    Negative stock is included. Truncating the list for display is up to
    the caller.
    """
    return [p for p in products if p.stock <= threshold]


def total_stock_value(products: Iterable[Product]) -> Decimal:
    """
    Inventory value at ACQUISITION COST (stock * cost), not selling price.

    Negative stock contributes negatively.
    """
    return sum((p.stock * p.cost for p in products), ZERO)


def recent_transactions(
    transactions: Iterable[Transaction],
    limit: Optional[int] = None,
) -> list[Transaction]:
    """
    Newest first, by date.

    The sort is stable, so transactions with identical timestamps keep
    their ledger (insertion) order.
    """
    ordered = sorted(transactions, key=lambda t: t.date, reverse=True)
    if limit is not None:
        return ordered[:limit]
    return ordered


def summarize(transactions: Iterable[Transaction]) -> FinancialSummary:
    """Headline figures for the dashboard."""
    transactions = list(transactions)
    income = total_by_type(transactions, TransactionType.INCOME)
    expense = total_by_type(transactions, TransactionType.EXPENSE)
    return FinancialSummary(
        total_income=income,
        total_expense=expense,
        net_profit=income - expense,
        transaction_count=len(transactions),
    )


def profit_and_loss(transactions: Iterable[Transaction]) -> ProfitAndLossStatement:
    """Build the all-time profit-and-loss statement."""
    transactions = list(transactions)
    summary = summarize(transactions)
    return ProfitAndLossStatement(
        income_by_category=group_by_category(transactions, TransactionType.INCOME),
        expense_by_category=group_by_category(transactions, TransactionType.EXPENSE),
        total_income=summary.total_income,
        total_expense=summary.total_expense,
        net_profit=summary.net_profit,
    )


def chart_series(
    transactions: Iterable[Transaction],
    limit: int = 10,
) -> list[dict]:
    """
    Data points for the dashboard bar chart.

    The last `limit` transactions in ledger order, numbered from 1.
    """
    window = list(transactions)[-limit:] if limit > 0 else []
    return [
        {
            "index": idx,
            "amount": float(t.amount),
            "type": t.type.value,
            "description": t.description,
        }
        for idx, t in enumerate(window, start=1)
    ]


def search_transactions(
    transactions: Iterable[Transaction],
    term: str = "",
) -> list[Transaction]:
    """
    Case-insensitive search over description, category and contact name.

    Results are newest first. An empty term matches everything.
    """
    needle = term.strip().lower()
    if not needle:
        return recent_transactions(transactions)

    def matches(t: Transaction) -> bool:
        if needle in t.description.lower():
            return True
        if needle in t.category.value.lower() or needle in t.category.label.lower():
            return True
        return bool(t.contact_name and needle in t.contact_name.lower())

    return recent_transactions(t for t in transactions if matches(t))


def contacts_for_type(
    contacts: Iterable[Contact],
    transaction_type: TransactionType,
) -> list[Contact]:
    """Customers for income, suppliers for expense."""
    role = (
        ContactRole.CUSTOMER
        if transaction_type == TransactionType.INCOME
        else ContactRole.SUPPLIER
    )
    return [c for c in contacts if c.role == role]
