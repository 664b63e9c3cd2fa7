"""
Receipt processing pipeline.

Orchestrates: OCR → store text → categorize → store suggestions.
Approval lives in ``receiptledger.pipeline.reconciliation``.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from receiptledger.errors import CollaboratorError, CollaboratorTimeout, InvalidArgument, InvalidJobState
from receiptledger.models import ReceiptProcessingJobModel
from receiptledger.pipeline import jobs
from receiptledger.pipeline.categorizer import Categorizer, parse_suggestion
from receiptledger.pipeline.ocr import OCRClient
from receiptledger.schemas import CategorizationSuggestion
from receiptledger.storage import LocalObjectStorage

logger = logging.getLogger(__name__)


def _failure_message(step: str, exc: CollaboratorError) -> str:
    if isinstance(exc, CollaboratorTimeout):
        return f"Receipt processing timed out during {step}"
    return exc.message


def _unexpected_message(step: str) -> str:
    return f"Receipt processing failed during {step}"


def run_ocr(
    db: Session,
    job: ReceiptProcessingJobModel,
    ocr: OCRClient,
    storage: Optional[LocalObjectStorage] = None,
) -> str:
    """pending → processing → completed (text stored) or failed."""
    jobs.mark_processing(db, job)
    try:
        content = storage.read(job.storage_path) if storage and job.storage_path else None
        text = ocr.extract_text(job.receipt_image_url, content=content)
        if not text or not text.strip():
            raise CollaboratorError("No text detected in receipt image")
    except CollaboratorError as exc:
        logger.error("OCR failed for job %s: %s", job.id, exc.message)
        jobs.mark_failed(db, job, _failure_message("OCR", exc))
        raise
    except Exception as exc:
        logger.exception("Unexpected OCR error for job %s", job.id)
        jobs.mark_failed(db, job, _unexpected_message("OCR"))
        raise CollaboratorError(_unexpected_message("OCR")) from exc
    jobs.record_ocr_text(db, job, text)
    logger.info("OCR stored for job %s (%d chars)", job.id, len(text))
    return text


def categorize_job(
    db: Session,
    job: ReceiptProcessingJobModel,
    categorizer: Categorizer,
    ocr_text: Optional[str] = None,
) -> CategorizationSuggestion:
    """Categorize a completed job's text and store the suggestions."""
    if job.status != jobs.JobStatus.COMPLETED.value:
        raise InvalidJobState(
            f"Job {job.id} is {job.status}; OCR must complete before categorization",
            details={"job_id": job.id, "status": job.status},
        )
    text = ocr_text or job.ocr_text
    if not text or not text.strip():
        raise InvalidArgument("OCR text is required")

    try:
        suggestion = parse_suggestion(categorizer.categorize(text))
    except CollaboratorError as exc:
        logger.error("Categorization failed for job %s: %s", job.id, exc.message)
        jobs.mark_failed(db, job, _failure_message("categorization", exc))
        raise
    except Exception as exc:
        logger.exception("Unexpected categorization error for job %s", job.id)
        jobs.mark_failed(db, job, _unexpected_message("categorization"))
        raise CollaboratorError(_unexpected_message("categorization")) from exc
    jobs.record_suggestions(db, job, suggestion.to_record())
    logger.info(
        "Stored %d suggested line item(s) for job %s", len(suggestion.line_items), job.id
    )
    return suggestion


def process_receipt(
    db: Session,
    job: ReceiptProcessingJobModel,
    ocr: OCRClient,
    categorizer: Categorizer,
    storage: Optional[LocalObjectStorage] = None,
) -> tuple[str, CategorizationSuggestion]:
    """Run OCR and categorization for a freshly uploaded job.

    Returns ``(ocr_text, suggestion)``.
    """
    logger.info("Pipeline start: OCR for job %s", job.id)
    text = run_ocr(db, job, ocr, storage)

    logger.info("Pipeline: categorize job %s", job.id)
    suggestion = categorize_job(db, job, categorizer, text)
    return text, suggestion
