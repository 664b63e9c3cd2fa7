"""
Receipt processing job tracker.

pending → processing → completed → approved
                    ↘ failed     ↘ failed

``failed`` and ``approved`` are terminal. ``approved`` is always written
together with ``approved_at``.
"""
from __future__ import annotations

import logging
import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from receiptledger.errors import AlreadyApproved, InvalidJobState, NotFound
from receiptledger.models import ReceiptProcessingJobModel
from receiptledger.models.ledger import utcnow

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    APPROVED = "approved"


ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset({JobStatus.FAILED, JobStatus.APPROVED}),
    JobStatus.FAILED: frozenset(),
    JobStatus.APPROVED: frozenset(),
}


def _transition(job: ReceiptProcessingJobModel, target: JobStatus) -> None:
    current = JobStatus(job.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidJobState(
            f"Job {job.id} cannot move from {current.value} to {target.value}",
            details={"job_id": job.id, "status": current.value},
        )
    logger.info("Job %s: %s -> %s", job.id, current.value, target.value)
    job.status = target.value


def create_job(
    db: Session,
    profile_id: str,
    receipt_image_url: str,
    storage_path: Optional[str] = None,
) -> ReceiptProcessingJobModel:
    job = ReceiptProcessingJobModel(
        id=str(uuid.uuid4()),
        profile_id=profile_id,
        receipt_image_url=receipt_image_url,
        storage_path=storage_path,
        status=JobStatus.PENDING.value,
    )
    db.add(job)
    db.commit()
    logger.info("Created receipt job %s for profile %s", job.id, profile_id)
    return job


def get_job(db: Session, job_id: str, profile_id: str) -> ReceiptProcessingJobModel:
    job = (
        db.query(ReceiptProcessingJobModel)
        .filter(
            ReceiptProcessingJobModel.id == job_id,
            ReceiptProcessingJobModel.profile_id == profile_id,
        )
        .first()
    )
    if not job:
        raise NotFound("Processing job not found", details={"job_id": job_id})
    return job


def list_jobs(
    db: Session, profile_id: str, status: Optional[str] = None
) -> list[ReceiptProcessingJobModel]:
    query = db.query(ReceiptProcessingJobModel).filter(
        ReceiptProcessingJobModel.profile_id == profile_id
    )
    if status:
        query = query.filter(ReceiptProcessingJobModel.status == status)
    return query.order_by(ReceiptProcessingJobModel.created_at.desc()).all()


def mark_processing(db: Session, job: ReceiptProcessingJobModel) -> None:
    _transition(job, JobStatus.PROCESSING)
    job.processed_at = utcnow()
    db.commit()


def record_ocr_text(db: Session, job: ReceiptProcessingJobModel, text: str) -> None:
    _transition(job, JobStatus.COMPLETED)
    job.ocr_text = text
    db.commit()


def record_suggestions(db: Session, job: ReceiptProcessingJobModel, suggestions: dict) -> None:
    if job.status != JobStatus.COMPLETED.value:
        raise InvalidJobState(
            f"Job {job.id} must be completed to store suggestions (is {job.status})",
            details={"job_id": job.id, "status": job.status},
        )
    job.ai_suggestions = suggestions
    db.commit()


def mark_failed(db: Session, job: ReceiptProcessingJobModel, message: str) -> None:
    """Record a terminal failure; a new upload is needed to retry."""
    db.rollback()
    _transition(job, JobStatus.FAILED)
    job.error_message = message
    db.commit()
    logger.warning("Job %s failed: %s", job.id, message)


def claim_for_approval(db: Session, job: ReceiptProcessingJobModel) -> None:
    """Mark ``job`` approved inside the caller's transaction.

    The conditional UPDATE lets exactly one concurrent approval win; the
    caller commits or rolls back together with its ledger writes.
    """
    if job.approved_at is not None or job.status == JobStatus.APPROVED.value:
        raise AlreadyApproved(
            "Receipt has already been approved", details={"job_id": job.id}
        )
    if job.status != JobStatus.COMPLETED.value:
        raise InvalidJobState(
            f"Job {job.id} is {job.status}; only completed jobs can be approved",
            details={"job_id": job.id, "status": job.status},
        )

    result = db.execute(
        update(ReceiptProcessingJobModel)
        .where(
            ReceiptProcessingJobModel.id == job.id,
            ReceiptProcessingJobModel.status == JobStatus.COMPLETED.value,
            ReceiptProcessingJobModel.approved_at.is_(None),
        )
        .values(status=JobStatus.APPROVED.value, approved_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise AlreadyApproved(
            "Receipt has already been approved", details={"job_id": job.id}
        )
    db.refresh(job)
    logger.info("Job %s: completed -> approved", job.id)
