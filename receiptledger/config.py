"""
Application settings.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./data/receiptledger.db"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Receipt file storage
    DATA_DIR: str = "./data"
    UPLOAD_DIR: str = "./data/receipts"
    PUBLIC_BASE_URL: str = "http://localhost:8000/files"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    ALLOWED_UPLOAD_TYPES: List[str] = [
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "application/pdf",
    ]

    # OCR (Google Cloud Vision REST)
    GOOGLE_CLOUD_VISION_API_KEY: str = ""
    VISION_API_URL: str = "https://vision.googleapis.com/v1/images:annotate"
    OCR_TIMEOUT_SECONDS: float = 30.0

    # LLM categorization
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_API_BASE: str = "https://api.openai.com/v1"
    LLM_TEMPERATURE: float = 0.1
    LLM_MAX_TOKENS: int = 1000
    LLM_TIMEOUT_SECONDS: float = 60.0
    LLM_MAX_RETRIES: int = 2

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
