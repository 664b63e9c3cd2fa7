"""
Profile endpoints.

POST /api/profiles        create a profile
GET  /api/profiles/{id}   get one profile
"""
from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from receiptledger.database import get_db
from receiptledger.dependencies import require_profile
from receiptledger.errors import Conflict
from receiptledger.models import ProfileModel
from receiptledger.schemas import ProfileCreate, ProfileOut, ProfileResponse

logger = logging.getLogger(__name__)
router = APIRouter()


# ── POST /api/profiles ───────────────────────────────────────────────────
@router.post("/profiles", response_model=ProfileResponse, status_code=201)
def create_profile(req: ProfileCreate, db: Session = Depends(get_db)):
    profile_id = req.id or str(uuid.uuid4())
    if db.query(ProfileModel).filter(ProfileModel.id == profile_id).first():
        raise Conflict("Profile already exists", details={"profile_id": profile_id})
    if req.email and db.query(ProfileModel).filter(ProfileModel.email == req.email).first():
        raise Conflict("Email is already in use", details={"email": req.email})

    profile = ProfileModel(id=profile_id, email=req.email, full_name=req.full_name)
    db.add(profile)
    db.commit()
    logger.info("Created profile %s", profile_id)
    return ProfileResponse(profile=ProfileOut.model_validate(profile))


# ── GET /api/profiles/{profile_id} ───────────────────────────────────────
@router.get("/profiles/{profile_id}", response_model=ProfileResponse)
def get_profile(profile_id: str, db: Session = Depends(get_db)):
    profile = require_profile(db, profile_id)
    return ProfileResponse(profile=ProfileOut.model_validate(profile))
