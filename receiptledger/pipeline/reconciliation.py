"""
Approval / reconciliation engine.

Turns the reviewed line items of a receipt job into ledger rows:

* one expense when the receipt is not split (or has a single item), or
* one split parent carrying the receipt total plus one child per item.

The job claim, every expense insert and the status change run in a single
database transaction. Feedback samples (AI suggestion vs. final choice) are
written afterwards on a best-effort basis and never undo an approval.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from receiptledger.errors import InvalidArgument, LedgerWriteError, ReceiptLedgerError
from receiptledger.models import (
    AICategorizationFeedbackModel,
    ExpenseModel,
    ReceiptProcessingJobModel,
)
from receiptledger.pipeline import jobs
from receiptledger.pipeline.category_lookup import resolve_category_id
from receiptledger.schemas import ApproveRequest, LineItem, clamp_confidence

logger = logging.getLogger(__name__)

DEFAULT_RECEIPT_NAME = "Receipt Transaction"
ZERO = Decimal("0.00")


@dataclass
class ApprovalResult:
    job: ReceiptProcessingJobModel
    transaction: Optional[ExpenseModel] = None
    parent_transaction: Optional[ExpenseModel] = None
    child_transactions: list[ExpenseModel] = field(default_factory=list)
    feedback: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_split(self) -> bool:
        return self.parent_transaction is not None

    @property
    def expenses(self) -> list[ExpenseModel]:
        if self.parent_transaction is not None:
            return [self.parent_transaction, *self.child_transactions]
        return [self.transaction] if self.transaction is not None else []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def line_items_total(items: Iterable[LineItem]) -> Decimal:
    return sum((item.amount for item in items), ZERO)


def _suggested_items(job: ReceiptProcessingJobModel) -> list[dict]:
    suggestions = job.ai_suggestions if isinstance(job.ai_suggestions, dict) else {}
    items = suggestions.get("lineItems")
    return [i for i in items if isinstance(i, dict)] if isinstance(items, list) else []


def _match_by_description(suggested: list[dict], description: str) -> Optional[dict]:
    for candidate in suggested:
        if candidate.get("description") == description:
            return candidate
    return None


def _feedback_sample(
    req: ApproveRequest, expense: ExpenseModel, item: LineItem, suggestion: dict
) -> dict[str, Any]:
    return {
        "profile_id": req.profile_id,
        "expense_id": expense.id,
        "ai_suggested_category": suggestion.get("category"),
        "user_chosen_category": item.category,
        "ai_confidence_score": clamp_confidence(suggestion.get("confidence")),
        "merchant_name": req.merchant,
        "transaction_amount": item.amount,
    }


def _insert_expense(db: Session, label: str, **values: Any) -> ExpenseModel:
    expense = ExpenseModel(id=str(uuid.uuid4()), **values)
    db.add(expense)
    try:
        db.flush()
    except SQLAlchemyError as exc:
        raise LedgerWriteError(f"Failed to create {label}: {exc}") from exc
    return expense


def _item_values(db: Session, req: ApproveRequest, item: LineItem) -> dict[str, Any]:
    return {
        "profile_id": req.profile_id,
        "category_id": resolve_category_id(db, req.profile_id, item.category),
        "amount": item.amount,
        "description": item.description,
        "merchant": req.merchant,
        "expense_type": "business" if item.business_class else "personal",
        "business_class": item.business_class or None,
        "tags": item.tags or None,
        "note": item.note or None,
        "ai_confidence_score": item.confidence,
        "is_split_transaction": False,
        "source": "receipt",
    }


# ---------------------------------------------------------------------------
# Approval paths
# ---------------------------------------------------------------------------

def _approve_split(
    db: Session, req: ApproveRequest, job: ReceiptProcessingJobModel, expense_date: date
) -> ApprovalResult:
    total = line_items_total(req.line_items)
    label = req.merchant or DEFAULT_RECEIPT_NAME
    parent = _insert_expense(
        db,
        "parent transaction",
        profile_id=req.profile_id,
        category_id=None,
        amount=total,
        name=label,
        description=label,
        merchant=req.merchant,
        expense_date=expense_date,
        expense_type="personal",
        is_split_transaction=True,
        receipt_image_url=job.receipt_image_url,
        split_line_items=[item.model_dump(mode="json") for item in req.line_items],
        source="receipt",
    )

    result = ApprovalResult(job=job, parent_transaction=parent)
    suggested = _suggested_items(job)
    for item in req.line_items:
        child = _insert_expense(
            db,
            "child transaction",
            parent_transaction_id=parent.id,
            name=item.description,
            expense_date=expense_date,
            **_item_values(db, req, item),
        )
        result.child_transactions.append(child)

        suggestion = _match_by_description(suggested, item.description)
        if suggestion is not None:
            result.feedback.append(_feedback_sample(req, child, item, suggestion))

    children_total = sum((c.amount for c in result.child_transactions), ZERO)
    if children_total != parent.amount:
        raise LedgerWriteError(
            "Split children do not add up to the parent amount",
            details={"parent": str(parent.amount), "children": str(children_total)},
        )
    return result


def _approve_single(
    db: Session, req: ApproveRequest, job: ReceiptProcessingJobModel, expense_date: date
) -> ApprovalResult:
    item = req.line_items[0]
    expense = _insert_expense(
        db,
        "transaction",
        name=req.merchant or item.description,
        expense_date=expense_date,
        receipt_image_url=job.receipt_image_url,
        **_item_values(db, req, item),
    )

    result = ApprovalResult(job=job, transaction=expense)
    suggested = _suggested_items(job)
    if suggested:
        result.feedback.append(_feedback_sample(req, expense, item, suggested[0]))
    return result


def _apply_approval(db: Session, req: ApproveRequest) -> ApprovalResult:
    """Stage one approval in the current transaction without committing."""
    if not req.line_items:
        raise InvalidArgument("lineItems must contain at least one item")

    job = jobs.get_job(db, req.job_id, req.profile_id)
    jobs.claim_for_approval(db, job)

    expense_date = req.expense_date or date.today()
    # A split flag with a single item degrades to a plain transaction.
    if req.is_split_transaction and len(req.line_items) > 1:
        result = _approve_split(db, req, job, expense_date)
    else:
        result = _approve_single(db, req, job, expense_date)

    logger.info(
        "Staged approval of job %s: %d ledger row(s), split=%s",
        job.id,
        len(result.expenses),
        result.is_split,
    )
    return result


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------

def record_feedback(db: Session, samples: list[dict[str, Any]]) -> int:
    """Append feedback rows; failures are logged and swallowed."""
    if not samples:
        return 0
    try:
        db.add_all(
            AICategorizationFeedbackModel(id=str(uuid.uuid4()), **sample)
            for sample in samples
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Failed to record %d AI feedback sample(s): %s", len(samples), exc)
        return 0
    return len(samples)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def approve_receipts(db: Session, requests: list[ApproveRequest]) -> list[ApprovalResult]:
    """Approve several receipt jobs atomically: all of them or none."""
    if not requests:
        raise InvalidArgument("approvals must contain at least one approval")

    try:
        results = [_apply_approval(db, req) for req in requests]
        db.commit()
    except ReceiptLedgerError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Ledger write failed: %s", exc, exc_info=True)
        raise LedgerWriteError(f"Failed to approve receipt: {exc}") from exc

    for result in results:
        record_feedback(db, result.feedback)
    return results


def approve_receipt(db: Session, req: ApproveRequest) -> ApprovalResult:
    return approve_receipts(db, [req])[0]
