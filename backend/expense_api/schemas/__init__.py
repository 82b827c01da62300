# Common schemas
from .common import (
    PaginationMeta,
    FieldError,
    ErrorBody,
    ApiResponse,
    PaginatedApiResponse,
    ErrorResponse
)

# Category schemas
from .category import (
    ExpenseCategoryBase,
    ExpenseCategoryCreate,
    ExpenseCategoryUpdate,
    ExpenseCategory
)

# Expense schemas
from .expense import (
    ExpenseCreateRequest,
    ExpenseCreate,
    ExpenseUpdate,
    Expense,
    ExpenseFilters,
    ExpenseListResponse,
    TopExpenseCategory,
    ExpenseChange
)

# Make all schemas available at package level
__all__ = [
    # Common
    "PaginationMeta",
    "FieldError",
    "ErrorBody",
    "ApiResponse",
    "PaginatedApiResponse",
    "ErrorResponse",
    # Category
    "ExpenseCategoryBase",
    "ExpenseCategoryCreate",
    "ExpenseCategoryUpdate",
    "ExpenseCategory",
    # Expense
    "ExpenseCreateRequest",
    "ExpenseCreate",
    "ExpenseUpdate",
    "Expense",
    "ExpenseFilters",
    "ExpenseListResponse",
    "TopExpenseCategory",
    "ExpenseChange"
]
