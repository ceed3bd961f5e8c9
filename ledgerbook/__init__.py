"""
Ledgerbook - Source Package

A small-business bookkeeping assistant: income and expense ledger,
inventory that follows every sale and purchase, a contact directory,
profit-and-loss reporting and AI-assisted risk review.

DESIGN PRINCIPLES:
1. The ledger is the single source of truth
2. Fail early, fail visibly
3. No silent corrections
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Ledgerbook Team"
