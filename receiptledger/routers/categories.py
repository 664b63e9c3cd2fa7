"""
Expense category endpoints.

GET    /api/categories                        list a profile's categories with budgets
POST   /api/categories                        create a category (optional monthly budget)
PUT    /api/categories                        update a category / upsert its budget
DELETE /api/categories                        delete an unused category
POST   /api/categories/bulk-insert            seed the personal category set
POST   /api/categories/bulk-insert-business   seed the business category set
"""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from receiptledger.database import get_db
from receiptledger.dependencies import require_profile
from receiptledger.errors import Conflict, InvalidArgument, NotFound
from receiptledger.models import CategoryBudgetModel, ExpenseCategoryModel, ExpenseModel
from receiptledger.pipeline.seeding import (
    BUSINESS_CATEGORIES,
    PERSONAL_CATEGORIES,
    seed_categories,
    upsert_budget,
)
from receiptledger.schemas import (
    BudgetOut,
    BulkInsertRequest,
    BulkInsertResponse,
    CategoryCreate,
    CategoryListResponse,
    CategoryOut,
    CategoryResponse,
    CategoryUpdate,
    Envelope,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def transform_category(
    category: ExpenseCategoryModel, budgets: list[CategoryBudgetModel]
) -> CategoryOut:
    return CategoryOut(
        id=category.id,
        name=category.name,
        description=category.description or "",
        color=category.color,
        is_default=category.is_default,
        created_at=category.created_at,
        category_budgets=[BudgetOut.model_validate(b) for b in budgets],
    )


def _budgets_for(db: Session, category_id: str) -> list[CategoryBudgetModel]:
    return (
        db.query(CategoryBudgetModel)
        .filter(CategoryBudgetModel.category_id == category_id)
        .order_by(CategoryBudgetModel.month_year.desc())
        .all()
    )


def _get_category(db: Session, category_id: str, profile_id: str) -> ExpenseCategoryModel:
    category = (
        db.query(ExpenseCategoryModel)
        .filter(
            ExpenseCategoryModel.id == category_id,
            ExpenseCategoryModel.profile_id == profile_id,
        )
        .first()
    )
    if not category:
        raise NotFound("Category not found", details={"category_id": category_id})
    return category


def _ensure_unique_name(db: Session, profile_id: str, name: str, exclude_id: str | None = None):
    query = db.query(ExpenseCategoryModel).filter(
        ExpenseCategoryModel.profile_id == profile_id,
        ExpenseCategoryModel.name == name,
    )
    if exclude_id:
        query = query.filter(ExpenseCategoryModel.id != exclude_id)
    if query.first():
        raise Conflict("Category with this name already exists", details={"name": name})


# ── GET /api/categories ──────────────────────────────────────────────────
@router.get("/categories", response_model=CategoryListResponse)
def list_categories(profile_id: str = Query(..., alias="profileId"), db: Session = Depends(get_db)):
    require_profile(db, profile_id)
    categories = (
        db.query(ExpenseCategoryModel)
        .filter(ExpenseCategoryModel.profile_id == profile_id)
        .order_by(ExpenseCategoryModel.name)
        .all()
    )
    budgets = defaultdict(list)
    for b in (
        db.query(CategoryBudgetModel)
        .filter(CategoryBudgetModel.profile_id == profile_id)
        .order_by(CategoryBudgetModel.month_year.desc())
        .all()
    ):
        budgets[b.category_id].append(b)

    logger.info("Found %d categories for profile %s", len(categories), profile_id)
    return CategoryListResponse(
        categories=[transform_category(c, budgets[c.id]) for c in categories]
    )


# ── POST /api/categories ─────────────────────────────────────────────────
@router.post("/categories", response_model=CategoryResponse, status_code=201)
def create_category(req: CategoryCreate, db: Session = Depends(get_db)):
    require_profile(db, req.profile_id)
    name = req.name.strip()
    if not name:
        raise InvalidArgument("Category name must not be empty")
    _ensure_unique_name(db, req.profile_id, name)

    category = ExpenseCategoryModel(
        id=str(uuid.uuid4()),
        profile_id=req.profile_id,
        name=name,
        description=req.description or "",
        color=req.color or "#3B82F6",
        is_default=False,
    )
    db.add(category)
    db.flush()
    if req.budget_amount is not None:
        upsert_budget(db, req.profile_id, category.id, req.budget_amount)
    db.commit()
    logger.info("Created category %s (%s) for profile %s", category.id, name, req.profile_id)

    return CategoryResponse(category=transform_category(category, _budgets_for(db, category.id)))


# ── PUT /api/categories ──────────────────────────────────────────────────
@router.put("/categories", response_model=CategoryResponse)
def update_category(req: CategoryUpdate, db: Session = Depends(get_db)):
    category = _get_category(db, req.id, req.profile_id)

    if req.name is not None and req.name.strip() != category.name:
        _ensure_unique_name(db, req.profile_id, req.name.strip(), exclude_id=category.id)
        category.name = req.name.strip()
    if req.description is not None:
        category.description = req.description
    if req.color is not None:
        category.color = req.color
    if req.budget_amount is not None:
        upsert_budget(db, req.profile_id, category.id, req.budget_amount)
    db.commit()
    logger.info("Updated category %s", category.id)

    return CategoryResponse(category=transform_category(category, _budgets_for(db, category.id)))


# ── DELETE /api/categories ───────────────────────────────────────────────
@router.delete("/categories", response_model=Envelope)
def delete_category(
    category_id: str = Query(..., alias="id"),
    profile_id: str = Query(..., alias="profileId"),
    db: Session = Depends(get_db),
):
    category = _get_category(db, category_id, profile_id)

    in_use = (
        db.query(ExpenseModel.id)
        .filter(ExpenseModel.category_id == category.id)
        .count()
    )
    if in_use:
        raise Conflict(
            "Cannot delete category that is used by existing expenses",
            details={"category_id": category.id, "expense_count": in_use},
        )

    db.query(CategoryBudgetModel).filter(
        CategoryBudgetModel.category_id == category.id
    ).delete(synchronize_session=False)
    db.delete(category)
    db.commit()
    logger.info("Deleted category %s", category_id)
    return Envelope(message="Category deleted successfully")


# ── POST /api/categories/bulk-insert ─────────────────────────────────────
@router.post("/categories/bulk-insert", response_model=BulkInsertResponse)
def bulk_insert_personal(req: BulkInsertRequest, db: Session = Depends(get_db)):
    require_profile(db, req.profile_id)
    created, budgets = seed_categories(db, req.profile_id, PERSONAL_CATEGORIES)
    return BulkInsertResponse(
        message="Personal categories seeded", categories_created=created, budgets_created=budgets
    )


# ── POST /api/categories/bulk-insert-business ────────────────────────────
@router.post("/categories/bulk-insert-business", response_model=BulkInsertResponse)
def bulk_insert_business(req: BulkInsertRequest, db: Session = Depends(get_db)):
    require_profile(db, req.profile_id)
    created, budgets = seed_categories(db, req.profile_id, BUSINESS_CATEGORIES)
    return BulkInsertResponse(
        message="Business categories seeded", categories_created=created, budgets_created=budgets
    )
