from sqlalchemy import Column, String, Text, DateTime, Numeric, Index, CheckConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid
from ..db import Base


class ExpenseCategory(Base):
    """
    Spending category owned by a single company.
    An optional limit caps the amount of any single expense recorded against it.
    Rows are never hard-deleted; deleted_at marks them inactive.
    """
    __tablename__ = "expense_categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    company_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    limit = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    expenses = relationship("Expense", back_populates="category")

    __table_args__ = (
        # Name is unique per company among active categories only
        Index(
            "ix_expense_categories_company_name_active",
            "company_id",
            "name",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        CheckConstraint('"limit" IS NULL OR "limit" >= 0', name="expense_categories_limit_non_negative"),
    )
