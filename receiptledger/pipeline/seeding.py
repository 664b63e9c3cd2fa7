"""
Starter category sets with monthly budgets.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from receiptledger.errors import InvalidArgument
from receiptledger.models import CategoryBudgetModel, ExpenseCategoryModel
from receiptledger.models.ledger import utcnow

logger = logging.getLogger(__name__)


class SeedCategory(NamedTuple):
    name: str
    description: str
    color: str
    budget: int


PERSONAL_CATEGORIES: tuple[SeedCategory, ...] = (
    # Home essentials
    SeedCategory("Home Rent", "Monthly rent payments", "#FF6B6B", 2501),
    SeedCategory("Utilities", "Electric, water, gas, internet", "#FF8E6B", 660),
    # Food & drink
    SeedCategory("Groceries", "Food shopping, household essentials", "#4ECDC4", 1301),
    SeedCategory("Restaurants", "Dining out, food delivery", "#45B7D1", 218),
    SeedCategory("Party Store & Bars", "Alcohol, bar visits", "#5DADE2", 52),
    # Shopping
    SeedCategory("Tobacco", "Cigarettes, tobacco products", "#A569BD", 200),
    SeedCategory("Household", "Home goods, cleaning supplies", "#BB6BD9", 350),
    SeedCategory("Movies and Video Games", "Entertainment purchases", "#96CEB4", 130),
    SeedCategory("Fuel", "Gas for vehicles", "#F7DC6F", 125),
    SeedCategory("Beauty", "Cosmetics, personal care", "#FF9FF3", 60),
    SeedCategory("Pets", "Pet food, supplies, vet bills", "#85C1E9", 52),
    # Future needs / saving
    SeedCategory("Healthcare", "Medical expenses, prescriptions", "#F8C471", 600),
    SeedCategory("Clothing", "Clothes, shoes, accessories", "#82E0AA", 200),
    SeedCategory("Holiday/Gifts", "Holiday spending, gifts", "#F1948A", 120),
    SeedCategory("Kids Cell Phones", "Cell phone bills for children", "#AED6F1", 90),
    SeedCategory("Insurance", "Various insurance payments", "#D7BDE2", 70),
    SeedCategory("School", "School supplies, fees", "#A9DFBF", 50),
    # Other
    SeedCategory("Bank Fees", "Banking fees and charges", "#EC7063", 0),
    SeedCategory("Bank-rup", "Bankruptcy payments", "#CB4335", 0),
    SeedCategory("Kids Activities", "Activities and sports for children", "#F39C12", 0),
    SeedCategory("Uncategorized", "Expenses without a category", "#95A5A6", 0),
)

BUSINESS_CATEGORIES: tuple[SeedCategory, ...] = (
    SeedCategory("B - Rent", "Business rent and facility costs", "#E74C3C", 650),
    SeedCategory("B - Software and subscriptions", "Business software, SaaS, subscriptions", "#3498DB", 100),
    SeedCategory("B - Office", "Office supplies and equipment", "#2ECC71", 17),
    SeedCategory("Work food", "Business meals and work-related food", "#F39C12", 339),
    SeedCategory("B - COGS", "Cost of Goods Sold - direct business costs", "#9B59B6", 275),
    SeedCategory("B - Advertising", "Marketing and advertising expenses", "#E67E22", 100),
    SeedCategory("B - Fuel", "Business vehicle fuel costs", "#34495E", 62),
    SeedCategory("B - Auto Repair", "Business vehicle maintenance and repairs", "#95A5A6", 50),
    SeedCategory("COGS - Grit Collective Co.", "Cost of goods for Grit Collective Co.", "#8E44AD", 11),
)


def month_start(day: Optional[date] = None) -> date:
    day = day or date.today()
    return day.replace(day=1)


def parse_month(value: Optional[str]) -> Optional[date]:
    """``"YYYY-MM"`` (or a full ISO date) → first day of that month."""
    if not value:
        return None
    try:
        return date.fromisoformat(value if len(value) > 7 else f"{value}-01").replace(day=1)
    except ValueError as exc:
        raise InvalidArgument("month must be formatted as YYYY-MM", details={"month": value}) from exc


def upsert_budget(
    db: Session,
    profile_id: str,
    category_id: str,
    amount: Decimal,
    month: Optional[date] = None,
) -> CategoryBudgetModel:
    """Insert or replace the budget for (category, month). Does not commit."""
    month_year = month_start(month)
    budget = (
        db.query(CategoryBudgetModel)
        .filter(
            CategoryBudgetModel.profile_id == profile_id,
            CategoryBudgetModel.category_id == category_id,
            CategoryBudgetModel.month_year == month_year,
        )
        .first()
    )
    if budget:
        budget.budget_amount = amount
        budget.updated_at = utcnow()
        return budget

    budget = CategoryBudgetModel(
        id=str(uuid.uuid4()),
        profile_id=profile_id,
        category_id=category_id,
        budget_amount=amount,
        month_year=month_year,
    )
    db.add(budget)
    return budget


def seed_categories(
    db: Session, profile_id: str, seeds: tuple[SeedCategory, ...]
) -> tuple[int, int]:
    """Create missing seed categories and upsert this month's budgets.

    Returns ``(categories_created, budgets_written)``.
    """
    existing = {
        row.name: row
        for row in db.query(ExpenseCategoryModel)
        .filter(ExpenseCategoryModel.profile_id == profile_id)
        .all()
    }

    created = 0
    budgets = 0
    for seed in seeds:
        category = existing.get(seed.name)
        if category is None:
            category = ExpenseCategoryModel(
                id=str(uuid.uuid4()),
                profile_id=profile_id,
                name=seed.name,
                description=seed.description,
                color=seed.color,
                is_default=False,
            )
            db.add(category)
            existing[seed.name] = category
            created += 1
        if seed.budget > 0:
            db.flush()
            upsert_budget(db, profile_id, category.id, Decimal(seed.budget))
            budgets += 1

    db.commit()
    logger.info(
        "Seeded categories for profile %s: %d created, %d budgets", profile_id, created, budgets
    )
    return created, budgets
