"""
Shared pytest fixtures: in-memory SQLite + FastAPI TestClient + fake collaborators.
"""
import json
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from receiptledger.database import Base, get_db
from receiptledger.dependencies import get_categorizer, get_ocr_client, get_storage
from receiptledger.main import app
from receiptledger.models import (  # noqa: F401  register models
    ExpenseCategoryModel,
    ProfileModel,
    ReceiptProcessingJobModel,
)
from receiptledger.storage import LocalObjectStorage

# StaticPool ensures all connections share the same in-memory database
_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
_Session = sessionmaker(autocommit=False, autoflush=False, bind=_ENGINE)

PROFILE_ID = "profile-1"

RECEIPT_TEXT = "SHELL\n123 MAIN ST\nUNLEADED 11.2 GAL\nTOTAL $42.10\n"

FUEL_REPLY = json.dumps(
    {
        "merchant": "Shell",
        "date": "2024-05-03",
        "total": 42.10,
        "lineItems": [
            {"description": "Fuel", "amount": 42.10, "category": "Gas & Fuel", "confidence": 93}
        ],
        "isSplitTransaction": False,
    }
)


class FakeOCR:
    def __init__(self, text=RECEIPT_TEXT, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def extract_text(self, image_url, content=None):
        self.calls.append((image_url, content))
        if self.error:
            raise self.error
        return self.text


class FakeCategorizer:
    def __init__(self, reply=FUEL_REPLY, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def categorize(self, ocr_text):
        self.calls.append(ocr_text)
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture(autouse=True)
def _reset_tables():
    Base.metadata.create_all(bind=_ENGINE)
    yield
    Base.metadata.drop_all(bind=_ENGINE)


@pytest.fixture()
def db():
    session = _Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def storage(tmp_path):
    return LocalObjectStorage(tmp_path / "receipts", "http://testserver/files")


@pytest.fixture()
def ocr():
    return FakeOCR()


@pytest.fixture()
def categorizer():
    return FakeCategorizer()


@pytest.fixture()
def client(db, storage, ocr, categorizer):
    def _override():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = _override
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_ocr_client] = lambda: ocr
    app.dependency_overrides[get_categorizer] = lambda: categorizer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def profile(db):
    row = ProfileModel(id=PROFILE_ID, email="sam@example.com", full_name="Sam")
    db.add(row)
    db.commit()
    return row


@pytest.fixture()
def categories(db, profile):
    """name → id for a small personal category set."""
    ids = {}
    for name, color in (
        ("Gas & Fuel", "#F7DC6F"),
        ("Groceries", "#4ECDC4"),
        ("Household", "#BB6BD9"),
    ):
        category = ExpenseCategoryModel(
            id=str(uuid.uuid4()), profile_id=profile.id, name=name, color=color
        )
        db.add(category)
        ids[name] = category.id
    db.commit()
    return ids


@pytest.fixture()
def make_job(db, profile):
    """Factory for jobs that already went through OCR + categorization."""

    def _make(suggestions=None, status="completed", ocr_text=RECEIPT_TEXT):
        job = ReceiptProcessingJobModel(
            id=str(uuid.uuid4()),
            profile_id=profile.id,
            receipt_image_url=f"http://testserver/files/{profile.id}/1700000000000.jpg",
            ocr_text=ocr_text,
            ai_suggestions=suggestions,
            status=status,
        )
        db.add(job)
        db.commit()
        return job

    return _make
