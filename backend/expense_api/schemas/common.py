from pydantic import BaseModel, Field
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Pagination metadata"""
    page: int = Field(ge=1, description="Current page number")
    page_size: int = Field(ge=1, description="Items per page")
    total: int = Field(ge=0, description="Total number of items")
    total_pages: int = Field(ge=0, description="Total number of pages")
    has_next: bool = Field(description="Whether there is a next page")
    has_prev: bool = Field(description="Whether there is a previous page")


class FieldError(BaseModel):
    field: str
    message: str
    code: Optional[str] = None


class ErrorBody(BaseModel):
    title: str
    detail: str
    errors: Optional[List[FieldError]] = None


class ApiResponse(BaseModel, Generic[T]):
    """Uniform success envelope"""
    success: bool = True
    data: T


class PaginatedApiResponse(ApiResponse[List[T]], Generic[T]):
    pagination: PaginationMeta


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorBody

    @classmethod
    def from_error(cls, error: Dict[str, Any]) -> "ErrorResponse":
        return cls(error=ErrorBody(**error))
