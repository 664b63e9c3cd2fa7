"""
Ledger models: profiles, expense categories, monthly budgets and expenses.
"""
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)

from receiptledger.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ProfileModel(Base):
    """Tenant scope: one family member's account"""
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    email = Column(String, unique=True)
    full_name = Column(String)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class ExpenseCategoryModel(Base):
    __tablename__ = "expense_categories"
    __table_args__ = (
        UniqueConstraint("profile_id", "name", name="uq_category_profile_name"),
    )

    id = Column(String, primary_key=True)
    profile_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    color = Column(String, default="#3B82F6")
    is_default = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class CategoryBudgetModel(Base):
    __tablename__ = "category_budgets"
    __table_args__ = (
        UniqueConstraint("category_id", "month_year", name="uq_budget_category_month"),
    )

    id = Column(String, primary_key=True)
    profile_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    category_id = Column(String, ForeignKey("expense_categories.id"), nullable=False, index=True)
    budget_amount = Column(Numeric(12, 2), nullable=False)
    month_year = Column(Date, nullable=False)  # first day of the month
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class ExpenseModel(Base):
    """General ledger entry"""
    __tablename__ = "expenses"

    id = Column(String, primary_key=True)
    profile_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    category_id = Column(String, ForeignKey("expense_categories.id"), index=True)

    amount = Column(Numeric(12, 2), nullable=False)
    name = Column(String)
    description = Column(Text, nullable=False)
    expense_date = Column(Date, nullable=False)
    merchant = Column(String)
    payment_method = Column(String)

    expense_type = Column(String, nullable=False, default="personal")  # personal, business
    business_class = Column(String)
    tags = Column(JSON)
    note = Column(Text)

    # Receipt linkage
    receipt_image_url = Column(String)
    parent_transaction_id = Column(String, ForeignKey("expenses.id"), index=True)
    is_split_transaction = Column(Boolean, default=False, nullable=False)
    split_line_items = Column(JSON)  # split parents only: approved line items as submitted
    ai_confidence_score = Column(Integer)

    source = Column(String, nullable=False, default="manual")  # manual, receipt
    status_text = Column(String, nullable=False, default="posted")

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
