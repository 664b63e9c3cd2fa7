"""
Request-scoped collaborators.

Routers take these through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""
from fastapi import Request
from sqlalchemy.orm import Session

from receiptledger.config import settings
from receiptledger.errors import NotFound
from receiptledger.models import ProfileModel
from receiptledger.pipeline.categorizer import Categorizer, OpenAICategorizer
from receiptledger.pipeline.ocr import OCRClient, VisionOCRClient
from receiptledger.storage import LocalObjectStorage


def get_storage(request: Request) -> LocalObjectStorage:
    return request.app.state.storage


def get_ocr_client() -> OCRClient:
    return VisionOCRClient(
        settings.GOOGLE_CLOUD_VISION_API_KEY,
        api_url=settings.VISION_API_URL,
        timeout_seconds=settings.OCR_TIMEOUT_SECONDS,
    )


def get_categorizer() -> Categorizer:
    return OpenAICategorizer(
        settings.OPENAI_API_KEY,
        settings.OPENAI_MODEL,
        base_url=settings.OPENAI_API_BASE,
        temperature=settings.LLM_TEMPERATURE,
        max_tokens=settings.LLM_MAX_TOKENS,
        timeout_seconds=settings.LLM_TIMEOUT_SECONDS,
        max_retries=settings.LLM_MAX_RETRIES,
    )


def require_profile(db: Session, profile_id: str) -> ProfileModel:
    profile = db.query(ProfileModel).filter(ProfileModel.id == profile_id).first()
    if not profile:
        raise NotFound("Profile not found", details={"profile_id": profile_id})
    return profile
