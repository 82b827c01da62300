from pydantic import BaseModel, Field
from typing import Any, List, Optional
from uuid import UUID
from datetime import datetime

from .common import PaginationMeta


class ExpenseCreateRequest(BaseModel):
    """Request body for creating an expense; tenant and user come from headers"""
    amount: float = Field(ge=0)
    date_produced: datetime
    category_id: UUID


class ExpenseCreate(ExpenseCreateRequest):
    """Fully-identified expense passed to the service layer"""
    company_id: UUID
    user_id: UUID


class ExpenseUpdate(BaseModel):
    """Partial update of an expense"""
    amount: Optional[float] = Field(None, ge=0)
    date_produced: Optional[datetime] = None
    category_id: Optional[UUID] = None


class Expense(BaseModel):
    id: UUID
    company_id: UUID
    category_id: UUID
    user_id: UUID
    amount: float
    date_produced: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExpenseFilters(BaseModel):
    """Filters for expense listing"""
    category_id: Optional[UUID] = Field(None, description="Filter by category ID")
    start_date: Optional[datetime] = Field(None, description="Inclusive lower bound on date_produced")
    end_date: Optional[datetime] = Field(None, description="Inclusive upper bound on date_produced")


class ExpenseListResponse(BaseModel):
    """Paginated expense listing"""
    expenses: List[Expense]
    pagination: PaginationMeta


class TopExpenseCategory(BaseModel):
    name: str
    total_expenses: float


class ExpenseChange(BaseModel):
    """One changed field of an expense update"""
    field: str
    old_value: Any = None
    new_value: Any = None
