"""
CourseHub Configuration
Environment-driven settings for the API process and the document store
"""

import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

SUPPORTED_STORES = ("firestore", "mongo")


class Settings:
    """Settings read from the environment. Backend-specific values are only
    required once that backend actually connects."""

    def __init__(self):
        self.DOCUMENT_STORE = os.getenv("DOCUMENT_STORE", "firestore").strip().lower()
        self.MONGO_URL = os.getenv("MONGO_URL")
        self.MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "coursehub_db")
        self.FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
        self.FIREBASE_PRIVATE_KEY = (os.getenv("FIREBASE_PRIVATE_KEY") or "").replace('\\n', '\n') or None
        self.FIREBASE_CLIENT_EMAIL = os.getenv("FIREBASE_CLIENT_EMAIL")
        self.ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.PORT = int(os.getenv("PORT", "3001"))
        self.ALLOWED_ORIGINS = self._parse_origins(os.getenv("ALLOWED_ORIGINS", "*"))
        self.STATIC_DIR = os.getenv("STATIC_DIR", "public")

        if self.DOCUMENT_STORE not in SUPPORTED_STORES:
            raise RuntimeError(
                f"FATAL: DOCUMENT_STORE must be one of {SUPPORTED_STORES}, got {self.DOCUMENT_STORE!r}"
            )

    @staticmethod
    def require(key: str, value: Optional[str]) -> str:
        """Return a required setting or crash"""
        if not value:
            raise RuntimeError(f"FATAL: Missing required environment variable: {key}")
        return value

    @staticmethod
    def _parse_origins(origins_str: str) -> List[str]:
        origins = [origin.strip() for origin in origins_str.split(",") if origin.strip()]
        return origins or ["*"]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def has_service_account(self) -> bool:
        return bool(self.FIREBASE_PROJECT_ID and self.FIREBASE_PRIVATE_KEY and self.FIREBASE_CLIENT_EMAIL)


settings = Settings()
