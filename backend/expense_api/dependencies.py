from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

# Re-export database dependency
from .db import get_db

# Re-export request context dependencies
from .auth import RequestContext, get_request_context, require_user_id

# Re-export cache dependency
from .services.cache import get_cache

from .services.category_service import CategoryService
from .services.expense_service import ExpenseService
from .tasks.notification_tasks import schedule_expense_notifications


def get_expense_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    cache=Depends(get_cache),
) -> ExpenseService:
    # Notifications are published after the response is sent
    return ExpenseService(db, cache, notify=schedule_expense_notifications(background_tasks))


def get_category_service(db: Session = Depends(get_db), cache=Depends(get_cache)) -> CategoryService:
    return CategoryService(db, cache)
