"""Expense validation package."""

from src.validation.validator import ExpenseValidator

__all__ = ["ExpenseValidator"]
