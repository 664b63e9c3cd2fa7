"""
Category name → id resolution, scoped to a profile.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from receiptledger.models import ExpenseCategoryModel


def resolve_category_id(db: Session, profile_id: str, name: Optional[str]) -> Optional[str]:
    """Return the id of the profile's category called *name*, or ``None``.

    A missing category is not an error: the expense is stored uncategorized.
    """
    if not name or not name.strip():
        return None
    row = (
        db.query(ExpenseCategoryModel.id)
        .filter(
            ExpenseCategoryModel.profile_id == profile_id,
            ExpenseCategoryModel.name == name.strip(),
        )
        .first()
    )
    return row.id if row else None
