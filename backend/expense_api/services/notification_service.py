"""
Expense notification rendering and publishing.

Turns an expense mutation into an email message ({to, subject, html}) and
publishes it to the email queue. Every failure is logged and absorbed; a
notification must never affect the expense operation that triggered it.
"""

import html
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.settings import get_settings
from ..enums import NotificationAction, MessageType
from ..schemas import ExpenseChange
from .user_service import UserDirectoryClient

logger = logging.getLogger(__name__)

ACTION_TEXT = {
    NotificationAction.CREATE: "created",
    NotificationAction.UPDATE: "updated",
    NotificationAction.DELETE: "deleted",
}

DATE_FIELDS = {"date_produced", "created_at", "updated_at"}


def format_currency(amount: Any) -> str:
    try:
        return f"${float(amount):,.2f}"
    except (TypeError, ValueError):
        return str(amount)


def format_date(value: Any) -> str:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime):
        return value.strftime("%B %d, %Y %H:%M")
    return str(value)


def _format_change_value(field: str, value: Any) -> str:
    if value is None:
        return "-"
    if field in DATE_FIELDS:
        return format_date(value)
    if field == "amount":
        return format_currency(value)
    return str(value)


class NotificationService:
    """Builds expense notification emails and hands them to the email queue"""

    def __init__(self, user_client: Optional[UserDirectoryClient] = None, publisher=None):
        settings = get_settings()
        self.queue_name = settings.notification_queue
        self.task_name = settings.notification_task_name
        self.user_client = user_client or UserDirectoryClient()
        self._publisher = publisher

        if not self.queue_name:
            logger.warning("NOTIFICATION_QUEUE not configured, notifications will be logged only")

    @property
    def publisher(self):
        if self._publisher is None:
            from ..core.celery import celery_app
            self._publisher = celery_app
        return self._publisher

    def send_expense_notification_with_user_email(
        self,
        action: NotificationAction,
        expense: Dict[str, Any],
        changes: Optional[List[Dict[str, Any]]] = None,
    ) -> bool:
        """
        Look up the acting user's email and send the notification.

        Returns:
            True if a message was published or logged, False if skipped or failed
        """
        try:
            user = self.user_client.get_user_by_id(str(expense["user_id"]))
            email = (user or {}).get("email")
            if not email:
                logger.warning(f"No email found for user {expense['user_id']}, skipping notification")
                return False

            notification_data = self.generate_notification_data(action, expense, email, changes)
            return self.send_expense_notification(notification_data)
        except Exception as e:
            logger.error(f"Error sending expense notification for expense {expense.get('id')}: {e}")
            return False

    def send_expense_notification(self, notification_data: Dict[str, Any]) -> bool:
        try:
            email_message = self.generate_email_message(notification_data)

            if self.queue_name:
                self.publish(email_message)
            else:
                logger.info(
                    "Notification logged (queue not configured): "
                    f"{json.dumps(email_message, indent=2, default=str)}"
                )
            return True
        except Exception as e:
            logger.error(f"Error sending notification: {e}")
            return False

    def publish(self, email_message: Dict[str, str]) -> None:
        result = self.publisher.send_task(
            self.task_name,
            args=[email_message],
            queue=self.queue_name,
            headers={"message_type": MessageType.EXPENSE_NOTIFICATION.value},
        )
        logger.info(f"Message published to queue {self.queue_name}: {getattr(result, 'id', None)}")

    def generate_notification_data(
        self,
        action: NotificationAction,
        expense: Dict[str, Any],
        user_email: str,
        changes: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        return {
            "expense_id": expense.get("id"),
            "action": NotificationAction(action),
            "action_date": datetime.now(timezone.utc),
            "expense_data": {
                "id": expense.get("id"),
                "amount": expense.get("amount"),
                "date_produced": expense.get("date_produced"),
                "category_id": expense.get("category_id"),
                "category_name": expense.get("category_name"),
                "user_id": expense.get("user_id"),
                "company_id": expense.get("company_id"),
                "created_at": expense.get("created_at"),
                "updated_at": expense.get("updated_at"),
            },
            "changes": [ExpenseChange.model_validate(change).model_dump() for change in changes or []],
            "user_email": user_email,
        }

    def generate_email_message(self, notification_data: Dict[str, Any]) -> Dict[str, str]:
        action = NotificationAction(notification_data["action"])
        expense = notification_data["expense_data"]
        changes = notification_data.get("changes") or []
        action_text = ACTION_TEXT[action]
        category_name = expense.get("category_name") or "Uncategorized"

        subject = f"Expense {action_text} - {category_name}"

        parts = [
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">',
            '<h2 style="color: #333;">Expense Notification</h2>',
            f"<p><strong>Action:</strong> {action_text.upper()}</p>",
            f"<p><strong>Action date:</strong> {format_date(notification_data['action_date'])}</p>",
            '<div style="background-color: #f5f5f5; padding: 15px; border-radius: 5px; margin: 20px 0;">',
            '<h3 style="margin-top: 0;">Expense Details</h3>',
            f"<p><strong>ID:</strong> {html.escape(str(expense.get('id')))}</p>",
            f"<p><strong>Amount:</strong> {format_currency(expense.get('amount'))}</p>",
            f"<p><strong>Expense date:</strong> {format_date(expense.get('date_produced'))}</p>",
            f"<p><strong>Category:</strong> {html.escape(category_name)}</p>",
            f"<p><strong>User:</strong> {html.escape(str(expense.get('user_id')))}</p>",
            f"<p><strong>Company:</strong> {html.escape(str(expense.get('company_id')))}</p>",
            "</div>",
        ]

        if changes:
            parts.append(
                '<div style="background-color: #fff3cd; padding: 15px; border-radius: 5px; margin: 20px 0;">'
                '<h3 style="margin-top: 0; color: #856404;">Changes</h3>'
                '<ul style="margin: 0; padding-left: 20px;">'
            )
            for change in changes:
                field = change["field"]
                old_value = html.escape(_format_change_value(field, change.get("old_value")))
                new_value = html.escape(_format_change_value(field, change.get("new_value")))
                parts.append(f"<li><strong>{html.escape(field)}:</strong> {old_value} → {new_value}</li>")
            parts.append("</ul></div>")

        parts.append(
            '<div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #ddd; font-size: 12px; color: #666;">'
            "<p>This is an automated message from the expense management system.</p>"
            f"<p>Sent: {format_date(datetime.now(timezone.utc))}</p>"
            "</div></div>"
        )

        return {
            "to": notification_data["user_email"],
            "subject": subject,
            "html": "".join(parts),
        }
