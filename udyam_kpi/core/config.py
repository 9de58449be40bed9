# udyam_kpi/core/config.py
import os
from pydantic_settings import BaseSettings
from pydantic import validator
from typing import List, Optional


FIREBASE_CERTS_URL = "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"


class Settings(BaseSettings):
    """Application settings loaded from .env"""

    # === Firebase (identity provider) ===
    FIREBASE_PROJECT_ID: str
    FIREBASE_ADMIN_SDK_CONFIG: Optional[str] = None  # base64 encoded service-account JSON
    FIREBASE_CERTS_URL: str = FIREBASE_CERTS_URL

    # === Document store ===
    MONGODB_URL: str
    MONGODB_DATABASE: str = "KpiDb"
    MASTER_KPI_COLLECTION: str = "master_kpis"
    ASSIGNMENT_COLLECTION: str = "kpi_assignments"
    USER_PROFILE_COLLECTION: str = "user_profiles"

    @validator("MONGODB_URL")
    def validate_mongodb_url(cls, v):
        """Ensure database URL is safe for current environment"""
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env == "production" and "localhost" in v:
            raise ValueError("🚨 Production environment cannot use localhost database!")
        return v

    @validator("FIREBASE_PROJECT_ID")
    def validate_project_id(cls, v):
        if not v or not v.strip():
            raise ValueError("FIREBASE_PROJECT_ID must not be empty")
        return v.strip()

    # === Business Rules ===
    USER_LIST_BATCH_SIZE: int = 1000
    ALLOW_UNASSIGNED_SUBMISSIONS: bool = True
    SEED_MASTER_KPIS: bool = True

    @validator("USER_LIST_BATCH_SIZE")
    def validate_batch_size(cls, v):
        # Firebase caps a single listUsers page at 1000
        if v < 1 or v > 1000:
            raise ValueError("USER_LIST_BATCH_SIZE must be between 1 and 1000")
        return v

    # === HTTP ===
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # === CORS ===
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    ALLOWED_METHODS: List[str] = ["*"]
    ALLOWED_HEADERS: List[str] = ["*"]

    # === System ===
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
