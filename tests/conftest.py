"""Shared fixtures: products, contacts, transactions and fake Gemini models."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from ledgerbook.audit import AuditLogger
from ledgerbook.ledger import LedgerStore
from ledgerbook.models.ledger import (
    Category,
    Contact,
    ContactRole,
    Product,
    Transaction,
    TransactionType,
)
from ledgerbook.services.storage import InMemoryStorage


BASE_DATE = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_transaction(
    amount="100.00",
    transaction_type=TransactionType.INCOME,
    category=None,
    description="Test transaction",
    day=0,
    **kwargs,
) -> Transaction:
    if category is None:
        category = (
            Category.SALES
            if transaction_type == TransactionType.INCOME
            else Category.OPERATIONAL
        )
    return Transaction(
        description=description,
        amount=Decimal(amount),
        type=transaction_type,
        category=category,
        date=BASE_DATE + timedelta(days=day),
        **kwargs,
    )


class FakeModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


@pytest.fixture
def widget() -> Product:
    return Product(
        name="Widget",
        category="Hardware",
        stock=Decimal("10"),
        price=Decimal("10000"),
        cost=Decimal("6000"),
    )


@pytest.fixture
def customer() -> Contact:
    return Contact(name="Budi", role=ContactRole.CUSTOMER, phone="0812-555-0101")


@pytest.fixture
def supplier() -> Contact:
    return Contact(name="PT Sumber", role=ContactRole.SUPPLIER)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def audit_logger(storage) -> AuditLogger:
    return AuditLogger(storage)


@pytest.fixture
def store(storage, audit_logger) -> LedgerStore:
    return LedgerStore(storage, audit_logger=audit_logger).load()
