from enum import Enum

class NotificationAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

class MessageType(str, Enum):
    EXPENSE_NOTIFICATION = "EXPENSE_NOTIFICATION"
