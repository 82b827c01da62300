"""
Expense CRUD plus the cached aggregate views built on top of it.

Two read paths are cache-aside:
- top expense categories per company
- expenses of one category within a date range

Every expense mutation invalidates the affected cache entries after the
database commit, then dispatches a best-effort notification.
"""

from typing import Any, Callable, Dict, List, Optional, Union
from uuid import UUID
from datetime import datetime, timezone
from decimal import Decimal
import logging
import math

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..core.settings import Settings, get_settings
from ..enums import NotificationAction
from ..errors import (
    AlreadyDeletedError,
    BusinessRuleViolation,
    DatabaseError,
    LimitExceededError,
    NotFoundError,
    ValidationError,
)
from ..schemas import (
    Expense,
    ExpenseCreate,
    ExpenseFilters,
    ExpenseListResponse,
    ExpenseUpdate,
    PaginationMeta,
    TopExpenseCategory,
)

logger = logging.getLogger(__name__)

TOP_CATEGORIES_ADAPTER = TypeAdapter(List[TopExpenseCategory])
EXPENSE_LIST_ADAPTER = TypeAdapter(List[Expense])

# Fields whose change is reported in update notifications
TRACKED_FIELDS = ("amount", "date_produced", "category_id")


def top_expense_categories_cache_key(company_id: Union[UUID, str]) -> str:
    return f"top_expense_categories:{company_id}"


def expenses_by_category_date_prefix(company_id: Union[UUID, str], category_id: Union[UUID, str]) -> str:
    return f"expenses_by_category_date:{company_id}:{category_id}"


def expenses_by_category_date_cache_key(
    company_id: Union[UUID, str],
    category_id: Union[UUID, str],
    start_date: datetime,
    end_date: datetime,
) -> str:
    prefix = expenses_by_category_date_prefix(company_id, category_id)
    return f"{prefix}:{as_utc(start_date).isoformat()}:{as_utc(end_date).isoformat()}"


def as_utc(value: datetime) -> datetime:
    """Normalize a timestamp to aware UTC; naive values are taken as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def validate_payload(schema, data, title: str):
    """Coerce a dict (or model) into schema, mapping pydantic errors to ValidationError"""
    if isinstance(data, schema):
        return data
    try:
        if hasattr(data, "model_dump"):
            data = data.model_dump(exclude_unset=True)
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic_errors(e.errors(), title=title) from e


def commit_or_raise(db: Session, action: str) -> None:
    """Commit the session, rolling back and wrapping store failures"""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Integrity error while trying to {action}: {e}")
        raise DatabaseError(f"Failed to {action}: referenced data is invalid or no longer exists", precondition_failed=True) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error while trying to {action}: {e}")
        raise DatabaseError(f"Failed to {action}") from e


class CacheInvalidator:
    """Deletes aggregate cache entries affected by a mutation"""

    def __init__(self, cache):
        self.cache = cache

    def top_categories(self, company_id) -> None:
        self.cache.delete(top_expense_categories_cache_key(company_id))

    def category_date_ranges(self, company_id, *category_ids) -> None:
        for category_id in {c for c in category_ids if c is not None}:
            deleted = self.cache.delete_pattern(f"{expenses_by_category_date_prefix(company_id, category_id)}:*")
            if deleted:
                logger.debug(f"Invalidated {deleted} date-range cache entries for category {category_id}")


class ExpenseService:
    """Expense operations for one request, with injected store, cache and notifier"""

    def __init__(
        self,
        db: Session,
        cache,
        notify: Optional[Callable[..., Any]] = None,
        settings: Optional[Settings] = None,
    ):
        if notify is None:
            from ..tasks.notification_tasks import dispatch_expense_notification
            notify = dispatch_expense_notification
        self.db = db
        self.cache = cache
        self.notify = notify
        self.settings = settings or get_settings()
        self.invalidate = CacheInvalidator(cache)

    # Aggregated reads

    def get_top_expense_categories(self, company_id: UUID) -> List[TopExpenseCategory]:
        """
        Categories of a company ranked by the sum of their active expenses.

        Soft-deleted categories and expenses are ignored; at most
        `top_categories_limit` entries are returned, highest total first.
        """
        cache_key = top_expense_categories_cache_key(company_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            try:
                return TOP_CATEGORIES_ADAPTER.validate_json(cached)
            except PydanticValidationError:
                logger.warning(f"Discarding unreadable cache entry {cache_key}")

        total = func.coalesce(func.sum(models.Expense.amount), 0)
        rows = (
            self.db.query(models.ExpenseCategory.name, total.label("total_expenses"))
            .outerjoin(
                models.Expense,
                and_(
                    models.Expense.category_id == models.ExpenseCategory.id,
                    models.Expense.company_id == models.ExpenseCategory.company_id,
                    models.Expense.deleted_at.is_(None),
                ),
            )
            .filter(
                models.ExpenseCategory.company_id == company_id,
                models.ExpenseCategory.deleted_at.is_(None),
            )
            .group_by(models.ExpenseCategory.id, models.ExpenseCategory.name)
            .order_by(total.desc(), models.ExpenseCategory.name)
            .limit(self.settings.top_categories_limit)
            .all()
        )

        result = [
            TopExpenseCategory(name=row.name, total_expenses=float(row.total_expenses or 0))
            for row in rows
        ]
        self.cache.set(cache_key, TOP_CATEGORIES_ADAPTER.dump_json(result).decode(), self.settings.cache_ttl_seconds)
        return result

    def get_expenses_by_category_and_date_range(
        self,
        company_id: UUID,
        category_id: UUID,
        start_date: datetime,
        end_date: datetime,
    ) -> List[Expense]:
        """Active expenses of one category with date_produced in [start_date, end_date], newest first"""
        start_date, end_date = as_utc(start_date), as_utc(end_date)
        if start_date > end_date:
            raise ValidationError(
                "start_date must not be after end_date",
                errors=[{"field": "start_date", "message": "must not be after end_date"}],
            )

        cache_key = expenses_by_category_date_cache_key(company_id, category_id, start_date, end_date)
        cached = self.cache.get(cache_key)
        # An empty list is a legitimate result and counts as a hit
        if cached is not None:
            try:
                return EXPENSE_LIST_ADAPTER.validate_json(cached)
            except PydanticValidationError:
                logger.warning(f"Discarding unreadable cache entry {cache_key}")

        if self._get_active_category(category_id, company_id) is None:
            raise NotFoundError(f"Category with ID '{category_id}' not found for this company")

        expenses = (
            self.db.query(models.Expense)
            .filter(
                models.Expense.category_id == category_id,
                models.Expense.company_id == company_id,
                models.Expense.deleted_at.is_(None),
                models.Expense.date_produced >= start_date,
                models.Expense.date_produced <= end_date,
            )
            .order_by(models.Expense.date_produced.desc())
            .all()
        )

        result = [Expense.model_validate(expense) for expense in expenses]
        self.cache.set(cache_key, EXPENSE_LIST_ADAPTER.dump_json(result).decode(), self.settings.cache_ttl_seconds)
        return result

    def get_expenses(
        self,
        company_id: Optional[UUID],
        role: Optional[str],
        page: int = 1,
        page_size: Optional[int] = None,
        filters: Optional[ExpenseFilters] = None,
    ) -> ExpenseListResponse:
        """
        List active expenses, newest first, with pagination.

        The privileged role sees every company; everyone else is scoped to company_id.
        """
        page_size = page_size or self.settings.default_page_size
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be positive integers")

        filters = filters or ExpenseFilters()
        start_date = as_utc(filters.start_date) if filters.start_date else None
        end_date = as_utc(filters.end_date) if filters.end_date else None
        if start_date and end_date and start_date > end_date:
            raise ValidationError(
                "start_date must not be after end_date",
                errors=[{"field": "start_date", "message": "must not be after end_date"}],
            )

        query = self.db.query(models.Expense).filter(models.Expense.deleted_at.is_(None))

        if not self.is_privileged(role):
            if company_id is None:
                raise ValidationError("Company ID is required")
            query = query.filter(models.Expense.company_id == company_id)

        if filters.category_id:
            query = query.filter(models.Expense.category_id == filters.category_id)
        if start_date:
            query = query.filter(models.Expense.date_produced >= start_date)
        if end_date:
            query = query.filter(models.Expense.date_produced <= end_date)

        total = query.count()
        total_pages = math.ceil(total / page_size) if total > 0 else 0
        offset = (page - 1) * page_size

        expenses = (
            query.order_by(models.Expense.date_produced.desc(), models.Expense.created_at.desc())
            .offset(offset)
            .limit(page_size)
            .all()
        )

        logger.info(f"Retrieved {len(expenses)} expenses for company {company_id} (page {page}/{total_pages})")

        return ExpenseListResponse(
            expenses=[Expense.model_validate(expense) for expense in expenses],
            pagination=PaginationMeta(
                page=page,
                page_size=page_size,
                total=total,
                total_pages=total_pages,
                has_next=page < total_pages,
                has_prev=page > 1,
            ),
        )

    # Mutations

    def create_expense(self, data: Union[ExpenseCreate, Dict[str, Any]]) -> models.Expense:
        data = validate_payload(ExpenseCreate, data, "Invalid expense data")

        category = self._get_active_category(data.category_id, data.company_id)
        if category is None:
            raise NotFoundError("Category not found")

        if category.limit is not None and to_decimal(data.amount) > to_decimal(category.limit):
            raise LimitExceededError(f"Expense amount exceeds category limit of {category.limit}")

        expense = models.Expense(
            company_id=data.company_id,
            category_id=data.category_id,
            user_id=data.user_id,
            amount=to_decimal(data.amount),
            date_produced=as_utc(data.date_produced),
        )
        self.db.add(expense)
        commit_or_raise(self.db, "create expense")
        self.db.refresh(expense)

        self.invalidate.top_categories(data.company_id)
        self.invalidate.category_date_ranges(data.company_id, data.category_id)

        logger.info(f"Created expense {expense.id} in category {category.id} for company {data.company_id}")
        self._notify(NotificationAction.CREATE, expense)
        return expense

    def update_expense(
        self,
        expense_id: UUID,
        company_id: UUID,
        patch: Union[ExpenseUpdate, Dict[str, Any]],
    ) -> models.Expense:
        patch = validate_payload(ExpenseUpdate, patch, "Invalid expense data")
        updates = {k: v for k, v in patch.model_dump(exclude_unset=True).items() if v is not None}
        if not updates:
            raise BusinessRuleViolation("No valid fields provided for update")

        expense = self._get_active_expense(expense_id, company_id)
        if expense is None:
            raise NotFoundError("Expense not found")

        old_category_id = expense.category_id
        category = expense.category
        if "category_id" in updates and updates["category_id"] != old_category_id:
            category = self._get_active_category(updates["category_id"], company_id)
            if category is None:
                raise NotFoundError("Category not found")

        changes = self._diff(expense, updates)
        changed_fields = {change["field"] for change in changes}

        # Updates are held to the same limit rule as creates
        if changed_fields & {"amount", "category_id"} and category.limit is not None:
            new_amount = updates.get("amount", expense.amount)
            if to_decimal(new_amount) > to_decimal(category.limit):
                raise LimitExceededError(f"Expense amount exceeds category limit of {category.limit}")

        for change in changes:
            setattr(expense, change["field"], change["new_value"])

        commit_or_raise(self.db, "update expense")
        self.db.refresh(expense)

        self.invalidate.category_date_ranges(company_id, old_category_id, expense.category_id)
        # Amount and category changes alter the ranking, so updates refresh it too
        self.invalidate.top_categories(company_id)

        logger.info(f"Updated expense {expense.id}: {sorted(changed_fields) or 'no changes'}")
        if changes:
            self._notify(NotificationAction.UPDATE, expense, changes)
        return expense

    def soft_delete_expense(self, expense_id: UUID, company_id: UUID) -> models.Expense:
        expense = (
            self.db.query(models.Expense)
            .filter(models.Expense.id == expense_id, models.Expense.company_id == company_id)
            .first()
        )
        if expense is None:
            raise NotFoundError("Expense not found")
        if expense.deleted_at is not None:
            raise AlreadyDeletedError("Expense already deleted")

        now = datetime.now(timezone.utc)
        expense.deleted_at = now
        expense.updated_at = now
        commit_or_raise(self.db, "delete expense")
        self.db.refresh(expense)

        self.invalidate.category_date_ranges(company_id, expense.category_id)
        self.invalidate.top_categories(company_id)

        logger.info(f"Soft-deleted expense {expense.id} for company {company_id}")
        self._notify(NotificationAction.DELETE, expense)
        return expense

    # Helpers

    def is_privileged(self, role: Optional[str]) -> bool:
        return bool(role) and role == self.settings.privileged_role

    def _get_active_category(self, category_id, company_id) -> Optional[models.ExpenseCategory]:
        return (
            self.db.query(models.ExpenseCategory)
            .filter(
                models.ExpenseCategory.id == category_id,
                models.ExpenseCategory.company_id == company_id,
                models.ExpenseCategory.deleted_at.is_(None),
            )
            .first()
        )

    def _get_active_expense(self, expense_id, company_id) -> Optional[models.Expense]:
        return (
            self.db.query(models.Expense)
            .filter(
                models.Expense.id == expense_id,
                models.Expense.company_id == company_id,
                models.Expense.deleted_at.is_(None),
            )
            .first()
        )

    @staticmethod
    def _diff(expense: models.Expense, updates: Dict[str, Any]) -> List[Dict[str, Any]]:
        changes = []
        for field in TRACKED_FIELDS:
            if field not in updates:
                continue
            old_value = getattr(expense, field)
            new_value = updates[field]
            if field == "amount":
                new_value = to_decimal(new_value)
                changed = old_value is None or to_decimal(old_value) != new_value
            elif field == "date_produced":
                new_value = as_utc(new_value)
                changed = old_value is None or as_utc(old_value) != new_value
            else:
                changed = old_value != new_value
            if changed:
                changes.append({"field": field, "old_value": old_value, "new_value": new_value})
        return changes

    def _notify(self, action: NotificationAction, expense: models.Expense, changes=None) -> None:
        try:
            self.notify(action, expense, changes)
        except Exception as e:
            logger.error(f"Notification dispatch for expense {expense.id} failed: {e}")
