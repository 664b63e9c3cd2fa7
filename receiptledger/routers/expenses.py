"""
Expense ledger endpoints.

GET    /api/expenses           list a profile's expenses (newest first)
POST   /api/expenses           record a manual expense
PUT    /api/expenses           edit an expense
DELETE /api/expenses           delete an expense
GET    /api/expenses/summary   dashboard totals and per-category spend
"""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from receiptledger.database import get_db
from receiptledger.dependencies import require_profile
from receiptledger.errors import Conflict, NotFound
from receiptledger.models import CategoryBudgetModel, ExpenseCategoryModel, ExpenseModel
from receiptledger.pipeline.category_lookup import resolve_category_id
from receiptledger.pipeline.seeding import month_start, parse_month
from receiptledger.schemas import (
    UNCATEGORIZED,
    CategorySpend,
    Envelope,
    ExpenseCreate,
    ExpenseListResponse,
    ExpenseOut,
    ExpenseResponse,
    ExpenseUpdate,
    SpendingSummary,
)

logger = logging.getLogger(__name__)
router = APIRouter()

ZERO = Decimal("0.00")
RECENT_DAYS = 7


def transform_expense(
    expense: ExpenseModel, category: Optional[ExpenseCategoryModel] = None
) -> ExpenseOut:
    """Convert a DB row into the API shape, flattening the category."""
    return ExpenseOut(
        id=expense.id,
        profile_id=expense.profile_id,
        category_id=expense.category_id,
        category_name=category.name if category else None,
        category_color=category.color if category else None,
        amount=expense.amount,
        name=expense.name,
        description=expense.description,
        expense_date=expense.expense_date,
        merchant=expense.merchant,
        payment_method=expense.payment_method,
        expense_type=expense.expense_type,
        business_class=expense.business_class,
        tags=expense.tags,
        note=expense.note,
        receipt_image_url=expense.receipt_image_url,
        parent_transaction_id=expense.parent_transaction_id,
        is_split_transaction=expense.is_split_transaction,
        split_line_items=expense.split_line_items,
        ai_confidence_score=expense.ai_confidence_score,
        source=expense.source,
        status_text=expense.status_text,
        created_at=expense.created_at,
        updated_at=expense.updated_at,
    )


def expense_out(db: Session, expense: ExpenseModel) -> ExpenseOut:
    category = None
    if expense.category_id:
        category = db.query(ExpenseCategoryModel).filter(
            ExpenseCategoryModel.id == expense.category_id
        ).first()
    return transform_expense(expense, category)


def _get_expense(db: Session, expense_id: str, profile_id: str) -> ExpenseModel:
    expense = (
        db.query(ExpenseModel)
        .filter(ExpenseModel.id == expense_id, ExpenseModel.profile_id == profile_id)
        .first()
    )
    if not expense:
        raise NotFound("Expense not found", details={"expense_id": expense_id})
    return expense


def _is_split_member(expense: ExpenseModel) -> bool:
    """Parent and children of a split must keep summing to the receipt total."""
    return bool(expense.is_split_transaction or expense.parent_transaction_id)


def _month_bounds(month: date) -> tuple[date, date]:
    start = month_start(month)
    return start, (start + timedelta(days=32)).replace(day=1)


# ── GET /api/expenses ────────────────────────────────────────────────────
@router.get("/expenses", response_model=ExpenseListResponse)
def list_expenses(
    profile_id: str = Query(..., alias="profileId"),
    limit: int = Query(50, ge=1, le=500),
    month: Optional[str] = Query(None, description="YYYY-MM"),
    db: Session = Depends(get_db),
):
    require_profile(db, profile_id)
    query = (
        db.query(ExpenseModel, ExpenseCategoryModel)
        .outerjoin(ExpenseCategoryModel, ExpenseModel.category_id == ExpenseCategoryModel.id)
        .filter(ExpenseModel.profile_id == profile_id)
    )
    month_year = parse_month(month)
    if month_year:
        start, end = _month_bounds(month_year)
        query = query.filter(ExpenseModel.expense_date >= start, ExpenseModel.expense_date < end)

    rows = (
        query.order_by(ExpenseModel.expense_date.desc(), ExpenseModel.created_at.desc())
        .limit(limit)
        .all()
    )
    logger.info("Found %d expenses for profile %s", len(rows), profile_id)
    return ExpenseListResponse(expenses=[transform_expense(e, c) for e, c in rows])


# ── POST /api/expenses ───────────────────────────────────────────────────
@router.post("/expenses", response_model=ExpenseResponse, status_code=201)
def create_expense(req: ExpenseCreate, db: Session = Depends(get_db)):
    require_profile(db, req.profile_id)
    expense = ExpenseModel(
        id=str(uuid.uuid4()),
        profile_id=req.profile_id,
        category_id=resolve_category_id(db, req.profile_id, req.category),
        amount=req.amount,
        name=req.description,
        description=req.description,
        expense_date=req.expense_date or date.today(),
        merchant=req.merchant,
        payment_method=req.payment_method,
        expense_type="business" if req.business_class else "personal",
        business_class=req.business_class,
        tags=req.tags,
        note=req.note,
        source="manual",
    )
    db.add(expense)
    db.commit()
    logger.info("Created expense %s (%s) for profile %s", expense.id, expense.amount, req.profile_id)
    return ExpenseResponse(expense=expense_out(db, expense))


# ── PUT /api/expenses ────────────────────────────────────────────────────
@router.put("/expenses", response_model=ExpenseResponse)
def update_expense(req: ExpenseUpdate, db: Session = Depends(get_db)):
    expense = _get_expense(db, req.id, req.profile_id)
    changes = req.model_dump(exclude_unset=True, exclude={"id", "profile_id"})

    new_amount = changes.get("amount")
    if _is_split_member(expense) and new_amount is not None and new_amount != expense.amount:
        raise Conflict(
            "Cannot change the amount of a split transaction or one of its line items",
            details={"expense_id": expense.id},
        )

    if "category" in changes:
        expense.category_id = resolve_category_id(db, req.profile_id, changes.pop("category"))
    if "description" in changes and changes["description"] is not None:
        expense.name = changes["description"]
    if "business_class" in changes:
        expense.expense_type = "business" if changes["business_class"] else "personal"
    for field, value in changes.items():
        if field in ("description", "amount", "expense_date") and value is None:
            continue
        setattr(expense, field, value)

    db.commit()
    logger.info("Updated expense %s: %s", expense.id, sorted(changes))
    return ExpenseResponse(expense=expense_out(db, expense))


# ── DELETE /api/expenses ─────────────────────────────────────────────────
@router.delete("/expenses", response_model=Envelope)
def delete_expense(
    expense_id: str = Query(..., alias="id"),
    profile_id: str = Query(..., alias="profileId"),
    db: Session = Depends(get_db),
):
    expense = _get_expense(db, expense_id, profile_id)
    if expense.parent_transaction_id:
        raise Conflict(
            "Cannot delete a line item of a split transaction",
            details={"expense_id": expense.id, "parent_id": expense.parent_transaction_id},
        )
    children = (
        db.query(ExpenseModel.id)
        .filter(ExpenseModel.parent_transaction_id == expense.id)
        .count()
    )
    if children:
        raise Conflict(
            "Cannot delete a split transaction that still has child transactions",
            details={"expense_id": expense.id, "child_count": children},
        )

    db.delete(expense)
    db.commit()
    logger.info("Deleted expense %s", expense_id)
    return Envelope(message="Expense deleted successfully")


# ── GET /api/expenses/summary ────────────────────────────────────────────
@router.get("/expenses/summary", response_model=SpendingSummary)
def spending_summary(
    profile_id: str = Query(..., alias="profileId"),
    month: Optional[str] = Query(None, description="YYYY-MM"),
    db: Session = Depends(get_db),
):
    require_profile(db, profile_id)
    month_year = parse_month(month) or month_start()
    start, end = _month_bounds(month_year)
    recent_since = date.today() - timedelta(days=RECENT_DAYS)

    # Split parents duplicate their children's amounts.
    expenses = (
        db.query(ExpenseModel)
        .filter(
            ExpenseModel.profile_id == profile_id,
            ExpenseModel.is_split_transaction.is_(False),
        )
        .all()
    )

    total = ZERO
    monthly = ZERO
    recent = 0
    spent = defaultdict(lambda: ZERO)
    for e in expenses:
        total += e.amount
        if e.expense_date >= recent_since:
            recent += 1
        if start <= e.expense_date < end:
            monthly += e.amount
            spent[e.category_id] += e.amount

    budgets = {
        b.category_id: b.budget_amount
        for b in db.query(CategoryBudgetModel).filter(
            CategoryBudgetModel.profile_id == profile_id,
            CategoryBudgetModel.month_year == start,
        )
    }
    categories = [
        CategorySpend(
            category_id=c.id,
            name=c.name,
            color=c.color,
            budget_amount=budgets.get(c.id),
            spent=spent.get(c.id, ZERO),
        )
        for c in db.query(ExpenseCategoryModel)
        .filter(ExpenseCategoryModel.profile_id == profile_id)
        .order_by(ExpenseCategoryModel.name)
    ]
    if spent.get(None):
        categories.append(CategorySpend(name=UNCATEGORIZED, spent=spent[None]))

    return SpendingSummary(
        month=start.strftime("%Y-%m"),
        total_expenses=total,
        monthly_total=monthly,
        recent_count=recent,
        categories=categories,
    )
