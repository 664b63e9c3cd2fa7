"""
Profile, category, budget and expense schemas.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from receiptledger.schemas.base import ApiModel, Envelope, Money, RecordModel


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class ProfileCreate(ApiModel):
    id: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None


class ProfileOut(RecordModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    created_at: datetime


class ProfileResponse(Envelope):
    profile: ProfileOut


# ---------------------------------------------------------------------------
# Categories & budgets
# ---------------------------------------------------------------------------

class BudgetOut(RecordModel):
    category_id: str
    budget_amount: Money
    month_year: date


class CategoryOut(RecordModel):
    id: str
    name: str
    description: Optional[str] = ""
    color: Optional[str] = None
    is_default: bool = False
    created_at: datetime
    category_budgets: List[BudgetOut] = Field(default_factory=list)


class CategoryCreate(ApiModel):
    profile_id: str
    name: str
    description: Optional[str] = ""
    color: Optional[str] = None
    budget_amount: Optional[Money] = None


class CategoryUpdate(ApiModel):
    id: str
    profile_id: str
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    budget_amount: Optional[Money] = None


class CategoryResponse(Envelope):
    category: CategoryOut


class CategoryListResponse(Envelope):
    categories: List[CategoryOut]


class BulkInsertRequest(ApiModel):
    profile_id: str


class BulkInsertResponse(Envelope):
    categories_created: int
    budgets_created: int


class BudgetUpsert(ApiModel):
    profile_id: str
    category_id: str
    budget_amount: Money
    month: Optional[date] = Field(
        default=None, description="Any day of the target month; defaults to the current month"
    )


class BudgetResponse(Envelope):
    budget: BudgetOut


class BudgetListResponse(Envelope):
    budgets: List[BudgetOut]


# ---------------------------------------------------------------------------
# Expenses
# ---------------------------------------------------------------------------

class ExpenseOut(RecordModel):
    id: str
    profile_id: str
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    category_color: Optional[str] = None
    amount: Money
    name: Optional[str] = None
    description: str
    expense_date: date
    merchant: Optional[str] = None
    payment_method: Optional[str] = None
    expense_type: str = "personal"
    business_class: Optional[str] = None
    tags: Optional[List[str]] = None
    note: Optional[str] = None
    receipt_image_url: Optional[str] = None
    parent_transaction_id: Optional[str] = None
    is_split_transaction: bool = False
    split_line_items: Optional[list] = None
    ai_confidence_score: Optional[int] = None
    source: str = "manual"
    status_text: str = "posted"
    created_at: datetime
    updated_at: datetime


class ExpenseCreate(ApiModel):
    profile_id: str
    description: str
    amount: Money
    category: Optional[str] = None
    expense_date: Optional[date] = Field(default=None, alias="date")
    merchant: Optional[str] = None
    payment_method: Optional[str] = None
    business_class: Optional[str] = None
    tags: Optional[List[str]] = None
    note: Optional[str] = None


class ExpenseUpdate(ApiModel):
    id: str
    profile_id: str
    description: Optional[str] = None
    amount: Optional[Money] = None
    category: Optional[str] = None
    expense_date: Optional[date] = Field(default=None, alias="date")
    merchant: Optional[str] = None
    payment_method: Optional[str] = None
    business_class: Optional[str] = None
    tags: Optional[List[str]] = None
    note: Optional[str] = None


class ExpenseResponse(Envelope):
    expense: ExpenseOut


class ExpenseListResponse(Envelope):
    expenses: List[ExpenseOut]


# ---------------------------------------------------------------------------
# Dashboard summary
# ---------------------------------------------------------------------------

class CategorySpend(ApiModel):
    category_id: Optional[str] = None
    name: str
    color: Optional[str] = None
    budget_amount: Optional[Money] = None
    spent: Money


class SpendingSummary(Envelope):
    month: str = Field(..., description="YYYY-MM")
    total_expenses: Money
    monthly_total: Money
    recent_count: int
    categories: List[CategorySpend] = Field(default_factory=list)
