"""
Monthly category budgets.

GET /api/budgets   list a profile's budgets (optionally for one month)
PUT /api/budgets   insert or replace the budget of a category for a month
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from receiptledger.database import get_db
from receiptledger.dependencies import require_profile
from receiptledger.errors import NotFound
from receiptledger.models import CategoryBudgetModel, ExpenseCategoryModel
from receiptledger.pipeline.seeding import parse_month, upsert_budget
from receiptledger.schemas import BudgetListResponse, BudgetOut, BudgetResponse, BudgetUpsert

logger = logging.getLogger(__name__)
router = APIRouter()


# ── GET /api/budgets ─────────────────────────────────────────────────────
@router.get("/budgets", response_model=BudgetListResponse)
def list_budgets(
    profile_id: str = Query(..., alias="profileId"),
    month: Optional[str] = Query(None, description="YYYY-MM"),
    db: Session = Depends(get_db),
):
    require_profile(db, profile_id)
    query = db.query(CategoryBudgetModel).filter(CategoryBudgetModel.profile_id == profile_id)
    month_year = parse_month(month)
    if month_year:
        query = query.filter(CategoryBudgetModel.month_year == month_year)
    rows = query.order_by(CategoryBudgetModel.month_year.desc()).all()
    return BudgetListResponse(budgets=[BudgetOut.model_validate(r) for r in rows])


# ── PUT /api/budgets ─────────────────────────────────────────────────────
@router.put("/budgets", response_model=BudgetResponse)
def put_budget(req: BudgetUpsert, db: Session = Depends(get_db)):
    category = (
        db.query(ExpenseCategoryModel)
        .filter(
            ExpenseCategoryModel.id == req.category_id,
            ExpenseCategoryModel.profile_id == req.profile_id,
        )
        .first()
    )
    if not category:
        raise NotFound("Category not found", details={"category_id": req.category_id})

    budget = upsert_budget(db, req.profile_id, category.id, req.budget_amount, req.month)
    db.commit()
    logger.info(
        "Budget for category %s in %s set to %s", category.id, budget.month_year, budget.budget_amount
    )
    return BudgetResponse(budget=BudgetOut.model_validate(budget))
