import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import BackgroundTasks

from expense_api.core.celery import celery_app
from expense_api.enums import NotificationAction
from expense_api.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def _json_value(value: Any) -> Any:
    """Convert ORM values (UUID, Decimal, datetime) into JSON-safe values"""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "as_tuple"):
        return float(value)
    return str(value)


def _expense_id(expense) -> Any:
    if isinstance(expense, dict):
        return expense.get("id")
    return getattr(expense, "id", None)


def build_expense_snapshot(expense) -> Dict[str, Any]:
    """Serializable snapshot of an Expense row for the notification worker"""
    category = getattr(expense, "category", None)
    return {
        "id": _json_value(expense.id),
        "amount": _json_value(expense.amount),
        "date_produced": _json_value(expense.date_produced),
        "category_id": _json_value(expense.category_id),
        "category_name": category.name if category is not None else None,
        "user_id": _json_value(expense.user_id),
        "company_id": _json_value(expense.company_id),
        "created_at": _json_value(expense.created_at),
        "updated_at": _json_value(expense.updated_at),
    }


def serialize_changes(changes: Optional[List[Dict[str, Any]]]) -> Optional[List[Dict[str, Any]]]:
    if not changes:
        return None
    return [
        {
            "field": change["field"],
            "old_value": _json_value(change.get("old_value")),
            "new_value": _json_value(change.get("new_value")),
        }
        for change in changes
    ]


@celery_app.task(bind=True)
def send_expense_notification(
    self,
    action: str,
    expense: Dict[str, Any],
    changes: Optional[List[Dict[str, Any]]] = None,
) -> bool:
    """
    Render and publish the email notification for an expense mutation

    Args:
        action: CREATE, UPDATE or DELETE
        expense: Snapshot produced by build_expense_snapshot
        changes: Field-level diff for updates

    Returns:
        True if the message was published (or logged in degraded mode)
    """
    logger.info(f"Task {self.request.id}: {action} notification for expense {expense.get('id')}")
    service = NotificationService()
    return service.send_expense_notification_with_user_email(
        NotificationAction(action), expense, changes
    )


def dispatch_expense_notification(
    action: NotificationAction,
    expense,
    changes: Optional[List[Dict[str, Any]]] = None,
) -> Optional[str]:
    """
    Fire-and-forget dispatch of an expense notification.

    `expense` is an Expense row or a snapshot already built by build_expense_snapshot.
    Broker failures are logged and swallowed so the calling request is never affected.

    Returns:
        Task ID, or None if the dispatch failed
    """
    action = NotificationAction(action).value
    try:
        snapshot = expense if isinstance(expense, dict) else build_expense_snapshot(expense)
        result = send_expense_notification.apply_async(
            args=[action, snapshot, serialize_changes(changes)],
            retry=False,
        )
        logger.info(f"Expense {snapshot['id']} {action} notification queued with task ID: {result.id}")
        return result.id
    except Exception as e:
        logger.error(f"Failed to dispatch {action} notification for expense {_expense_id(expense)}: {e}")
        return None


def schedule_expense_notifications(background_tasks: BackgroundTasks) -> Callable[..., None]:
    """
    Notifier for request handlers: snapshots the expense while the session is open
    and publishes after the response has been sent, so an unreachable broker never
    delays the request.
    """
    def notify(action: NotificationAction, expense, changes: Optional[List[Dict[str, Any]]] = None) -> None:
        background_tasks.add_task(
            dispatch_expense_notification, action, build_expense_snapshot(expense), changes
        )
    return notify
