"""
ReceiptLedger Backend: FastAPI application entry-point.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from receiptledger.config import settings
from receiptledger.database import Base, engine
from receiptledger.errors import ReceiptLedgerError
from receiptledger.schemas import ErrorEnvelope
from receiptledger.storage import LocalObjectStorage

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: ensure data dirs + tables exist
    os.makedirs(settings.DATA_DIR, exist_ok=True)
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    # Import models so Base.metadata knows about them
    import receiptledger.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready (%s)", settings.DATABASE_URL)

    app.state.storage = LocalObjectStorage(settings.UPLOAD_DIR, settings.PUBLIC_BASE_URL)
    logger.info("Receipt images stored under %s", settings.UPLOAD_DIR)

    yield
    logger.info("Shutting down")


app = FastAPI(
    title="ReceiptLedger",
    description="Receipt upload → OCR → AI categorization → reviewed expenses",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error: str, details=None) -> JSONResponse:
    body = ErrorEnvelope(error=error, details=jsonable_encoder(details))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(ReceiptLedgerError)
async def receipt_ledger_error_handler(request: Request, exc: ReceiptLedgerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [{k: v for k, v in e.items() if k != "ctx"} for e in exc.errors()]
    return _error_response(400, "Invalid request", errors)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, str(exc.detail))


@app.get("/")
async def root():
    return {"service": "ReceiptLedger", "version": "0.1.0", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# Uploaded receipt images
app.mount("/files", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="files")


# ── Register API routers ─────────────────────────────────────────────────
from receiptledger.routers.profiles import router as profiles_router  # noqa: E402
from receiptledger.routers.categories import router as categories_router  # noqa: E402
from receiptledger.routers.budgets import router as budgets_router  # noqa: E402
from receiptledger.routers.expenses import router as expenses_router  # noqa: E402
from receiptledger.routers.receipts import router as receipts_router  # noqa: E402

app.include_router(profiles_router, prefix="/api", tags=["Profiles"])
app.include_router(categories_router, prefix="/api", tags=["Categories"])
app.include_router(budgets_router, prefix="/api", tags=["Budgets"])
app.include_router(expenses_router, prefix="/api", tags=["Expenses"])
app.include_router(receipts_router, prefix="/api", tags=["Receipts"])
