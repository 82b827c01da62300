from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from .. import schemas
from ..dependencies import RequestContext, get_request_context, get_category_service
from ..services.category_service import CategoryService

router = APIRouter(
    prefix="/api/expense-categories",
    tags=["Expense Categories"],
    responses={404: {"description": "Not found"}},
)


@router.post(
    "",
    response_model=schemas.ApiResponse[schemas.ExpenseCategory],
    status_code=status.HTTP_201_CREATED,
)
def create_category(
    category: schemas.ExpenseCategoryCreate,
    context: RequestContext = Depends(get_request_context),
    service: CategoryService = Depends(get_category_service)
):
    """Create a new expense category for the caller's company"""
    db_category = service.create_category(context.company_id, category)
    return schemas.ApiResponse(data=schemas.ExpenseCategory.model_validate(db_category))


@router.put("/{category_id}", response_model=schemas.ApiResponse[schemas.ExpenseCategory])
def update_category(
    category_id: UUID,
    category: schemas.ExpenseCategoryUpdate,
    context: RequestContext = Depends(get_request_context),
    service: CategoryService = Depends(get_category_service)
):
    """Update name, description or limit of a category"""
    db_category = service.update_category(context.company_id, category_id, category)
    return schemas.ApiResponse(data=schemas.ExpenseCategory.model_validate(db_category))


@router.delete("/{category_id}", response_model=schemas.ApiResponse[schemas.ExpenseCategory])
def soft_delete_category(
    category_id: UUID,
    context: RequestContext = Depends(get_request_context),
    service: CategoryService = Depends(get_category_service)
):
    """Soft-delete a category"""
    db_category = service.soft_delete_category(context.company_id, category_id)
    return schemas.ApiResponse(data=schemas.ExpenseCategory.model_validate(db_category))


@router.get("", response_model=schemas.ApiResponse[List[schemas.ExpenseCategory]])
def list_categories(
    context: RequestContext = Depends(get_request_context),
    service: CategoryService = Depends(get_category_service)
):
    """List active categories for the caller's company"""
    categories = service.list_categories(context.company_id, context.role)
    return schemas.ApiResponse(data=[schemas.ExpenseCategory.model_validate(c) for c in categories])
