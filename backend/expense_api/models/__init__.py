# Import and re-export all models so callers can use `models.Expense`

# Import Base from db module
from ..db import Base

# Import all models from their individual files
from .expense_category import ExpenseCategory
from .expense import Expense

# Ensure all models are available at package level
__all__ = [
    "Base",
    "ExpenseCategory",
    "Expense",
]
