"""
Receipt workflow endpoints.

POST /api/receipts/upload          store an image and open a processing job
POST /api/receipts/process         OCR + AI categorization for a job
POST /api/receipts/categorize      re-run categorization on a completed job
POST /api/receipts/approve         turn reviewed line items into expenses
POST /api/receipts/approve/batch   approve several jobs in one transaction
GET  /api/receipts/jobs            list a profile's jobs
GET  /api/receipts/jobs/{job_id}   get one job
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from receiptledger.config import settings
from receiptledger.database import get_db
from receiptledger.dependencies import get_categorizer, get_ocr_client, get_storage, require_profile
from receiptledger.errors import InvalidArgument, LedgerWriteError, PayloadTooLarge
from receiptledger.pipeline import categorize_job, jobs, process_receipt
from receiptledger.pipeline.categorizer import Categorizer
from receiptledger.pipeline.ocr import OCRClient
from receiptledger.pipeline.reconciliation import ApprovalResult, approve_receipt, approve_receipts
from receiptledger.routers.expenses import expense_out
from receiptledger.schemas import (
    ApproveRequest,
    ApproveResponse,
    BatchApproveRequest,
    BatchApproveResponse,
    CategorizeRequest,
    CategorizeResponse,
    JobListResponse,
    JobOut,
    ProcessRequest,
    ProcessResponse,
    UploadResponse,
)
from receiptledger.storage import LocalObjectStorage, receipt_object_path

logger = logging.getLogger(__name__)
router = APIRouter()


def transform_approval(db: Session, result: ApprovalResult) -> ApproveResponse:
    if result.is_split:
        return ApproveResponse(
            message=f"Split transaction created with {len(result.child_transactions)} line items",
            job_id=result.job.id,
            parent_transaction=expense_out(db, result.parent_transaction),
            child_transactions=[expense_out(db, c) for c in result.child_transactions],
        )
    return ApproveResponse(
        message="Transaction created successfully",
        job_id=result.job.id,
        transaction=expense_out(db, result.transaction),
    )


# ── POST /api/receipts/upload ────────────────────────────────────────────
@router.post("/receipts/upload", response_model=UploadResponse, status_code=201)
def upload_receipt(
    receipt: UploadFile = File(...),
    profile_id: str = Form(..., alias="profileId"),
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage),
):
    require_profile(db, profile_id)

    if receipt.content_type not in settings.ALLOWED_UPLOAD_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Only JPEG, PNG, WebP, and PDF files are allowed.",
        )
    data = receipt.file.read()
    if not data:
        raise InvalidArgument("Uploaded file is empty")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise PayloadTooLarge(
            "File too large. Maximum size is 5MB.",
            details={"size": len(data), "limit": settings.MAX_UPLOAD_BYTES},
        )

    path = receipt_object_path(profile_id, receipt.filename)
    url = storage.put(path, data, receipt.content_type)
    try:
        job = jobs.create_job(db, profile_id, url, storage_path=path)
    except SQLAlchemyError as exc:
        db.rollback()
        storage.delete(path)
        logger.error("Failed to create processing job for %s: %s", path, exc)
        raise LedgerWriteError("Failed to create processing job") from exc

    return UploadResponse(job_id=job.id, receipt_url=url, message="Receipt uploaded successfully")


# ── POST /api/receipts/process ───────────────────────────────────────────
@router.post("/receipts/process", response_model=ProcessResponse)
def process(
    req: ProcessRequest,
    db: Session = Depends(get_db),
    storage: LocalObjectStorage = Depends(get_storage),
    ocr: OCRClient = Depends(get_ocr_client),
    categorizer: Categorizer = Depends(get_categorizer),
):
    job = jobs.get_job(db, req.job_id, req.profile_id)
    text, suggestion = process_receipt(db, job, ocr, categorizer, storage)
    return ProcessResponse(
        message="Receipt processed successfully",
        job_id=job.id,
        ocr_text=text,
        ai_suggestions=suggestion.to_record(),
    )


# ── POST /api/receipts/categorize ────────────────────────────────────────
@router.post("/receipts/categorize", response_model=CategorizeResponse)
def categorize(
    req: CategorizeRequest,
    db: Session = Depends(get_db),
    categorizer: Categorizer = Depends(get_categorizer),
):
    job = jobs.get_job(db, req.job_id, req.profile_id)
    suggestion = categorize_job(db, job, categorizer, req.ocr_text)
    return CategorizeResponse(job_id=job.id, suggestions=suggestion.to_record())


# ── POST /api/receipts/approve ───────────────────────────────────────────
@router.post("/receipts/approve", response_model=ApproveResponse)
def approve(req: ApproveRequest, db: Session = Depends(get_db)):
    logger.info("Approve job %s: %d line item(s), split=%s", req.job_id, len(req.line_items), req.is_split_transaction)
    result = approve_receipt(db, req)
    return transform_approval(db, result)


# ── POST /api/receipts/approve/batch ─────────────────────────────────────
@router.post("/receipts/approve/batch", response_model=BatchApproveResponse)
def approve_batch(req: BatchApproveRequest, db: Session = Depends(get_db)):
    logger.info("Batch approve %d job(s)", len(req.approvals))
    results = approve_receipts(db, req.approvals)
    return BatchApproveResponse(
        message=f"Approved {len(results)} receipt(s)",
        results=[transform_approval(db, r) for r in results],
    )


# ── GET /api/receipts/jobs ───────────────────────────────────────────────
@router.get("/receipts/jobs", response_model=JobListResponse)
def list_jobs(
    profile_id: str = Query(..., alias="profileId"),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    if status and status not in {s.value for s in jobs.JobStatus}:
        raise InvalidArgument(f"Unknown job status: {status}")
    rows = jobs.list_jobs(db, profile_id, status)
    return JobListResponse(jobs=[JobOut.model_validate(r) for r in rows])


# ── GET /api/receipts/jobs/{job_id} ──────────────────────────────────────
@router.get("/receipts/jobs/{job_id}", response_model=JobOut)
def get_job(job_id: str, profile_id: str = Query(..., alias="profileId"), db: Session = Depends(get_db)):
    return JobOut.model_validate(jobs.get_job(db, job_id, profile_id))
