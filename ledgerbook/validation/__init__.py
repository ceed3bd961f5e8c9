"""Validation package."""

from ledgerbook.validation.validator import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    ContactValidationError,
    ContactValidator,
    LedgerValidationError,
    ProductValidationError,
    ProductValidator,
    TransactionValidationError,
    TransactionValidator,
    get_user_friendly_summary,
)

__all__ = [
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "ContactValidationError",
    "ContactValidator",
    "LedgerValidationError",
    "ProductValidationError",
    "ProductValidator",
    "TransactionValidationError",
    "TransactionValidator",
    "get_user_friendly_summary",
]
