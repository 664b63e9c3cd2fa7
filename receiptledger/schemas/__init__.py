"""
API and pipeline schemas (pydantic v2).
"""
from receiptledger.schemas.base import (  # noqa: F401
    ApiModel,
    Envelope,
    ErrorEnvelope,
    Money,
    RecordModel,
    to_money,
)
from receiptledger.schemas.ledger import (  # noqa: F401
    BudgetListResponse,
    BudgetOut,
    BudgetResponse,
    BudgetUpsert,
    BulkInsertRequest,
    BulkInsertResponse,
    CategoryCreate,
    CategoryListResponse,
    CategoryOut,
    CategoryResponse,
    CategorySpend,
    CategoryUpdate,
    ExpenseCreate,
    ExpenseListResponse,
    ExpenseOut,
    ExpenseResponse,
    ExpenseUpdate,
    ProfileCreate,
    ProfileOut,
    ProfileResponse,
    SpendingSummary,
)
from receiptledger.schemas.receipts import (  # noqa: F401
    EXPENSE_CATEGORIES,
    UNCATEGORIZED,
    ApproveRequest,
    ApproveResponse,
    BatchApproveRequest,
    BatchApproveResponse,
    CategorizationSuggestion,
    CategorizeRequest,
    CategorizeResponse,
    JobListResponse,
    JobOut,
    LineItem,
    ProcessRequest,
    ProcessResponse,
    SuggestedLineItem,
    UploadResponse,
    clamp_confidence,
    coerce_category,
)
