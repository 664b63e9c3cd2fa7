from receiptledger.models.ledger import (  # noqa: F401
    CategoryBudgetModel,
    ExpenseCategoryModel,
    ExpenseModel,
    ProfileModel,
)
from receiptledger.models.receipt import (  # noqa: F401
    AICategorizationFeedbackModel,
    ReceiptProcessingJobModel,
)
