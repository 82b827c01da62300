"""
Application exception hierarchy.

Services raise these; the exception handlers registered in main.py translate
them into the `{success: false, error: {...}}` response envelope.
"""

from typing import Any, Dict, List, Optional

from fastapi import status


class ExpenseTrackerError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    title: str = "Internal Server Error"

    def __init__(self, detail: str, title: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        if title:
            self.title = title

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "detail": self.detail}


class ValidationError(ExpenseTrackerError):
    """Malformed or missing input, with field-level detail"""

    status_code = status.HTTP_400_BAD_REQUEST
    title = "Validation Error"

    def __init__(
        self,
        detail: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        title: Optional[str] = None,
    ):
        super().__init__(detail, title)
        self.errors = errors or []

    @classmethod
    def from_pydantic_errors(cls, errors: List[Dict[str, Any]], title: str = "Validation Error") -> "ValidationError":
        """Build from the error list of a pydantic ValidationError / RequestValidationError"""
        formatted = []
        for err in errors:
            # Drop the "body"/"query" prefix FastAPI adds to request locations
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header")]
            field = ".".join(loc)
            formatted.append({
                "field": field,
                "message": err.get("msg") or f"Invalid value for {field}",
                "code": err.get("type"),
            })

        summary = "; ".join(f"{e['field']}: {e['message']}" for e in formatted)
        if len(formatted) > 1:
            summary = f"Multiple validation errors occurred: {summary}"
        return cls(summary, errors=formatted, title=title)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        return data


class NotFoundError(ExpenseTrackerError):
    """Referenced category, expense or company does not exist"""

    status_code = status.HTTP_404_NOT_FOUND
    title = "Not Found"


class BusinessRuleViolation(ExpenseTrackerError):
    """Well-formed request that breaks a domain rule"""

    status_code = status.HTTP_400_BAD_REQUEST
    title = "Business Rule Violation"


class LimitExceededError(BusinessRuleViolation):
    title = "Limit Exceeded"


class AlreadyDeletedError(BusinessRuleViolation):
    title = "Already Deleted"


class DatabaseError(ExpenseTrackerError):
    """Wraps a store failure; precondition failures are client errors"""

    title = "Database Error"

    def __init__(self, detail: str, precondition_failed: bool = False):
        super().__init__(detail)
        self.precondition_failed = precondition_failed
        self.status_code = (
            status.HTTP_400_BAD_REQUEST if precondition_failed
            else status.HTTP_500_INTERNAL_SERVER_ERROR
        )


class InternalError(ExpenseTrackerError):
    """Unanticipated failure"""
