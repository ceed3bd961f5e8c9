"""Ledger package: the store, the inventory reconciler and transaction drafting."""

from ledgerbook.ledger.entry import build_transaction, resolve_draft
from ledgerbook.ledger.reconciler import (
    apply_to_inventory,
    apply_transaction_effect,
    reverse_in_inventory,
    reverse_transaction_effect,
    stock_delta,
)
from ledgerbook.ledger.store import (
    CONTACTS_KEY,
    PRODUCTS_KEY,
    RISK_KEY,
    TRANSACTIONS_KEY,
    LedgerStore,
)

__all__ = [
    "CONTACTS_KEY",
    "PRODUCTS_KEY",
    "RISK_KEY",
    "TRANSACTIONS_KEY",
    "LedgerStore",
    "apply_to_inventory",
    "apply_transaction_effect",
    "build_transaction",
    "resolve_draft",
    "reverse_in_inventory",
    "reverse_transaction_effect",
    "stock_delta",
]
