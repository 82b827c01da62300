from typing import Any, Dict, List, Optional, Union
from uuid import UUID
from datetime import datetime, timezone
import logging

from sqlalchemy.orm import Session

from .. import models
from ..core.settings import Settings, get_settings
from ..errors import AlreadyDeletedError, BusinessRuleViolation, NotFoundError
from ..schemas import ExpenseCategoryCreate, ExpenseCategoryUpdate
from .expense_service import CacheInvalidator, commit_or_raise, validate_payload

logger = logging.getLogger(__name__)


class CategoryService:
    """Service for expense category management, scoped per company."""

    def __init__(self, db: Session, cache, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()
        self.invalidate = CacheInvalidator(cache)

    def validate_company_id(self, company_id: UUID) -> bool:
        """Known-company check; an empty allow-list accepts every company"""
        allowed = self.settings.allowed_company_ids
        return not allowed or str(company_id) in allowed

    def create_category(
        self,
        company_id: UUID,
        data: Union[ExpenseCategoryCreate, Dict[str, Any]],
    ) -> models.ExpenseCategory:
        if not self.validate_company_id(company_id):
            raise NotFoundError(f"Company with ID '{company_id}' not found")

        data = validate_payload(ExpenseCategoryCreate, data, "Invalid category data")
        self._ensure_name_available(company_id, data.name)

        category = models.ExpenseCategory(
            company_id=company_id,
            name=data.name,
            description=data.description,
            limit=data.limit,
        )
        self.db.add(category)
        commit_or_raise(self.db, "create category")
        self.db.refresh(category)

        logger.info(f"Created category {category.id} ({category.name}) for company {company_id}")
        return category

    def update_category(
        self,
        company_id: UUID,
        category_id: UUID,
        patch: Union[ExpenseCategoryUpdate, Dict[str, Any]],
    ) -> models.ExpenseCategory:
        patch = validate_payload(ExpenseCategoryUpdate, patch, "Invalid category data")
        updates = {k: v for k, v in patch.model_dump(exclude_unset=True).items() if v is not None}
        if not updates:
            raise BusinessRuleViolation("No valid fields provided for update")

        category = self._get_category(company_id, category_id)
        if category is None or category.deleted_at is not None:
            raise NotFoundError(f"Category with ID '{category_id}' not found for company with ID '{company_id}'")

        if "name" in updates and updates["name"] != category.name:
            self._ensure_name_available(company_id, updates["name"])

        for field, value in updates.items():
            setattr(category, field, value)

        commit_or_raise(self.db, "update category")
        self.db.refresh(category)

        # Renames and limit changes alter the ranking payload
        self.invalidate.top_categories(company_id)

        logger.info(f"Updated category {category.id}: {sorted(updates)}")
        return category

    def soft_delete_category(self, company_id: UUID, category_id: UUID) -> models.ExpenseCategory:
        category = self._get_category(company_id, category_id)
        if category is None:
            raise NotFoundError(f"Category with ID '{category_id}' not found for company with ID '{company_id}'")
        if category.deleted_at is not None:
            raise AlreadyDeletedError("Category already deleted")

        now = datetime.now(timezone.utc)
        category.deleted_at = now
        category.updated_at = now
        commit_or_raise(self.db, "delete category")
        self.db.refresh(category)

        self.invalidate.top_categories(company_id)
        self.invalidate.category_date_ranges(company_id, category.id)

        logger.info(f"Soft-deleted category {category.id} for company {company_id}")
        return category

    def list_categories(self, company_id: Optional[UUID], role: Optional[str] = None) -> List[models.ExpenseCategory]:
        """Active categories ordered by name; the privileged role sees every company"""
        query = self.db.query(models.ExpenseCategory).filter(models.ExpenseCategory.deleted_at.is_(None))
        if not (role and role == self.settings.privileged_role):
            query = query.filter(models.ExpenseCategory.company_id == company_id)
        return query.order_by(models.ExpenseCategory.name).all()

    def _get_category(self, company_id: UUID, category_id: UUID) -> Optional[models.ExpenseCategory]:
        return (
            self.db.query(models.ExpenseCategory)
            .filter(
                models.ExpenseCategory.id == category_id,
                models.ExpenseCategory.company_id == company_id,
            )
            .first()
        )

    def _ensure_name_available(self, company_id: UUID, name: str) -> None:
        existing = (
            self.db.query(models.ExpenseCategory)
            .filter(
                models.ExpenseCategory.company_id == company_id,
                models.ExpenseCategory.name == name,
                models.ExpenseCategory.deleted_at.is_(None),
            )
            .first()
        )
        if existing:
            raise BusinessRuleViolation(f"Category with name '{name}' already exists for this company")
