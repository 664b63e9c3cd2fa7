"""
Receipt workflow schemas: AI suggestions, line items, jobs and approvals.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from receiptledger.schemas.base import ApiModel, Envelope, Money, RecordModel
from receiptledger.schemas.ledger import ExpenseOut

UNCATEGORIZED = "Uncategorized"
DEFAULT_CONFIDENCE = 50

# The only category names the categorization model may answer with.
EXPENSE_CATEGORIES: tuple[str, ...] = (
    "Food & Dining",
    "Gas & Fuel",
    "Groceries",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Travel",
    "Education",
    "Personal Care",
    "Home Improvement",
    "Automotive",
    "Insurance",
    "Taxes",
    "Investments",
    "Gifts & Donations",
    "Business Expenses",
    "Pet Care",
    "Subscriptions",
    "Banking Fees",
    "Legal",
    "Childcare",
    "Clothing",
    "Electronics",
    "Books & Supplies",
    "Fitness & Recreation",
    "Beauty & Spa",
    "Online Shopping",
    "Cash & ATM",
    "Transfer",
    "Income",
    "Refund",
    "Other",
    UNCATEGORIZED,
)


def clamp_confidence(value: Any) -> int:
    """Clamp to [0, 100]; missing or non-numeric values become 50."""
    if value is None or isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if number != number:  # NaN
        return DEFAULT_CONFIDENCE
    return int(round(max(0.0, min(100.0, number))))


def coerce_category(value: Any) -> str:
    if isinstance(value, str) and value in EXPENSE_CATEGORIES:
        return value
    return UNCATEGORIZED


# ---------------------------------------------------------------------------
# Categorization model output (validated boundary)
# ---------------------------------------------------------------------------

class SuggestedLineItem(ApiModel):
    description: str = ""
    amount: Money
    category: str = UNCATEGORIZED
    confidence: int = DEFAULT_CONFIDENCE

    @field_validator("description", mode="before")
    @classmethod
    def _description_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value: Any) -> str:
        return coerce_category(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamped(cls, value: Any) -> int:
        return clamp_confidence(value)


class CategorizationSuggestion(ApiModel):
    merchant: Optional[str] = None
    receipt_date: Optional[date] = Field(default=None, alias="date")
    total: Optional[Money] = None
    line_items: List[SuggestedLineItem]
    is_split_transaction: bool = False

    @field_validator("receipt_date", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> Optional[date]:
        if value in (None, "", "null"):
            return None
        if isinstance(value, date):
            return value
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            return None

    @field_validator("merchant", mode="before")
    @classmethod
    def _merchant_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def to_record(self) -> dict:
        """JSON payload stored on the job (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Approval
# ---------------------------------------------------------------------------

class LineItem(ApiModel):
    """A reviewed line item as submitted for approval."""
    description: str
    amount: Money
    category: str = UNCATEGORIZED
    confidence: int = DEFAULT_CONFIDENCE
    business_class: Optional[str] = None
    tags: Optional[List[str]] = None
    note: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamped(cls, value: Any) -> int:
        return clamp_confidence(value)


class ApproveRequest(ApiModel):
    job_id: str
    profile_id: str
    merchant: Optional[str] = None
    expense_date: Optional[date] = Field(default=None, alias="date")
    line_items: List[LineItem] = Field(default_factory=list)
    is_split_transaction: bool = False


class ApproveResponse(Envelope):
    job_id: str
    transaction: Optional[ExpenseOut] = None
    parent_transaction: Optional[ExpenseOut] = None
    child_transactions: Optional[List[ExpenseOut]] = None


class BatchApproveRequest(ApiModel):
    approvals: List[ApproveRequest]


class BatchApproveResponse(Envelope):
    results: List[ApproveResponse]


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

class JobOut(RecordModel):
    id: str
    profile_id: str
    receipt_image_url: str
    ocr_text: Optional[str] = None
    ai_suggestions: Optional[dict] = None
    status: str
    error_message: Optional[str] = None
    created_at: datetime
    processed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None


class JobListResponse(Envelope):
    jobs: List[JobOut]


class UploadResponse(Envelope):
    job_id: str
    receipt_url: str


class ProcessRequest(ApiModel):
    job_id: str
    profile_id: str


class ProcessResponse(Envelope):
    job_id: str
    ocr_text: str
    ai_suggestions: dict


class CategorizeRequest(ApiModel):
    job_id: str
    profile_id: str
    ocr_text: Optional[str] = None


class CategorizeResponse(Envelope):
    job_id: str
    suggestions: dict
