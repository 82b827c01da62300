from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from datetime import datetime


class ExpenseCategoryBase(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    limit: Optional[float] = Field(None, ge=0, description="Maximum amount allowed for a single expense")


class ExpenseCategoryCreate(ExpenseCategoryBase):
    pass


class ExpenseCategoryUpdate(BaseModel):
    """Partial update; only fields that are sent are changed"""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    limit: Optional[float] = Field(None, ge=0)


class ExpenseCategory(ExpenseCategoryBase):
    id: UUID
    company_id: UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True
