from datetime import datetime
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status

from .. import schemas
from ..core.settings import get_settings
from ..dependencies import (
    RequestContext,
    get_request_context,
    require_user_id,
    get_expense_service,
)
from ..services.expense_service import ExpenseService

settings = get_settings()

router = APIRouter(
    prefix="/api/expenses",
    tags=["Expenses"],
    responses={404: {"description": "Not found"}},
)


@router.post(
    "",
    response_model=schemas.ApiResponse[schemas.Expense],
    status_code=status.HTTP_201_CREATED,
)
def create_expense(
    expense: schemas.ExpenseCreateRequest,
    context: RequestContext = Depends(require_user_id),
    service: ExpenseService = Depends(get_expense_service)
):
    """
    Record an expense for the caller's company.

    - The category must be active and belong to the company
    - The amount must not exceed the category limit, when one is set
    """
    data = schemas.ExpenseCreate(
        **expense.model_dump(),
        company_id=context.company_id,
        user_id=context.user_id,
    )
    db_expense = service.create_expense(data)
    return schemas.ApiResponse(data=schemas.Expense.model_validate(db_expense))


@router.get("", response_model=schemas.PaginatedApiResponse[schemas.Expense])
def list_expenses(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size, description="Items per page"),
    category_id: Optional[UUID] = Query(None, description="Filter by category ID"),
    start_date: Optional[datetime] = Query(None, description="Inclusive lower bound on date_produced"),
    end_date: Optional[datetime] = Query(None, description="Inclusive upper bound on date_produced"),
    context: RequestContext = Depends(get_request_context),
    service: ExpenseService = Depends(get_expense_service)
):
    """List active expenses, newest first"""
    filters = schemas.ExpenseFilters(category_id=category_id, start_date=start_date, end_date=end_date)
    result = service.get_expenses(context.company_id, context.role, page, page_size, filters)
    return schemas.PaginatedApiResponse[schemas.Expense](data=result.expenses, pagination=result.pagination)


@router.get("/top-categories", response_model=schemas.ApiResponse[List[schemas.TopExpenseCategory]])
def get_top_expense_categories(
    context: RequestContext = Depends(get_request_context),
    service: ExpenseService = Depends(get_expense_service)
):
    """Top categories of the caller's company by total spent"""
    return schemas.ApiResponse(data=service.get_top_expense_categories(context.company_id))


@router.get("/categories/{category_id}", response_model=schemas.ApiResponse[List[schemas.Expense]])
def get_expenses_by_category_and_date_range(
    category_id: UUID,
    start_date: datetime = Query(..., description="Inclusive lower bound on date_produced"),
    end_date: datetime = Query(..., description="Inclusive upper bound on date_produced"),
    context: RequestContext = Depends(get_request_context),
    service: ExpenseService = Depends(get_expense_service)
):
    """Expenses of one category within a date range, newest first"""
    expenses = service.get_expenses_by_category_and_date_range(
        context.company_id, category_id, start_date, end_date
    )
    return schemas.ApiResponse(data=expenses)


@router.put("/{expense_id}", response_model=schemas.ApiResponse[schemas.Expense])
def update_expense(
    expense_id: UUID,
    expense: schemas.ExpenseUpdate,
    context: RequestContext = Depends(get_request_context),
    service: ExpenseService = Depends(get_expense_service)
):
    """Update amount, date or category of an expense"""
    db_expense = service.update_expense(expense_id, context.company_id, expense)
    return schemas.ApiResponse(data=schemas.Expense.model_validate(db_expense))


@router.delete("/{expense_id}", response_model=schemas.ApiResponse[schemas.Expense])
def soft_delete_expense(
    expense_id: UUID,
    context: RequestContext = Depends(get_request_context),
    service: ExpenseService = Depends(get_expense_service)
):
    """Soft-delete an expense"""
    db_expense = service.soft_delete_expense(expense_id, context.company_id)
    return schemas.ApiResponse(data=schemas.Expense.model_validate(db_expense))
