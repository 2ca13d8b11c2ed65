"""
Wallet Ledger - Source Package

A personal finance tracker that records expenses against bank accounts,
credit cards and cash, and keeps every balance consistent with the
expenses charged to it.

DESIGN PRINCIPLES:
1. A balance only moves together with the expense that explains it
2. Fail early, fail visibly
3. No silent corrections (the only one: card dues never go below zero)
4. Every balance change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Wallet Ledger Team"
