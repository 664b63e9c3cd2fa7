"""
Receipt processing models.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text

from receiptledger.database import Base
from receiptledger.models.ledger import utcnow


class ReceiptProcessingJobModel(Base):
    """One attempt to turn an uploaded receipt into ledger entries"""
    __tablename__ = "receipt_processing_jobs"

    id = Column(String, primary_key=True)
    profile_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    receipt_image_url = Column(String, nullable=False)
    storage_path = Column(String)

    ocr_text = Column(Text)
    ai_suggestions = Column(JSON)  # merchant, date, total, lineItems, isSplitTransaction

    status = Column(String, nullable=False, default="pending")  # pending, processing, completed, failed, approved
    error_message = Column(Text)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    processed_at = Column(DateTime)
    approved_at = Column(DateTime)


class AICategorizationFeedbackModel(Base):
    """Append-only (AI suggestion, user choice) pairs"""
    __tablename__ = "ai_categorization_feedback"

    id = Column(String, primary_key=True)
    profile_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    expense_id = Column(String, ForeignKey("expenses.id", ondelete="SET NULL"), index=True)
    ai_suggested_category = Column(String)
    user_chosen_category = Column(String)
    ai_confidence_score = Column(Integer)
    merchant_name = Column(String)
    transaction_amount = Column(Numeric(12, 2))
    created_at = Column(DateTime, default=utcnow, nullable=False)
