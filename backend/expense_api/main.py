import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.settings import get_settings
from .errors import ExpenseTrackerError, InternalError, ValidationError
from .schemas import ErrorResponse
from .routers import categories, expenses
from .services.cache import get_cache

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Expense Tracker API",
    description="Multi-tenant expense tracking with cached spending aggregates",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(categories.router)
app.include_router(expenses.router)


def _error_response(status_code: int, error: dict, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse.from_error(error).model_dump(exclude_none=True), headers=headers)


@app.exception_handler(ExpenseTrackerError)
async def expense_tracker_error_handler(request: Request, exc: ExpenseTrackerError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return _error_response(exc.status_code, exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    error = ValidationError.from_pydantic_errors(exc.errors(), title="Invalid request data")
    return _error_response(error.status_code, error.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error = {"title": "Request Error", "detail": str(exc.detail)}
    return _error_response(exc.status_code, error, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    error = InternalError("Internal Server Error")
    return _error_response(error.status_code, error.to_dict())


@app.get("/health")
def health_check(cache=Depends(get_cache)):
    cache_healthy = cache.healthcheck()
    return {
        "status": "healthy",
        "cache": "up" if cache_healthy else "down",
        "message": "Expense Tracker API is running"
    }

@app.get("/")
async def root():
    return {"message": "Welcome to Expense Tracker API"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("expense_api.main:app", host="0.0.0.0", port=8000, reload=True)
