import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


class Settings(BaseModel):
    """Application settings read from the environment (and a local .env file)."""

    project_name: str = os.getenv("PROJECT_NAME", "Abros Healthcare - Medicine Inventory Management System")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    # MongoDB
    database_url: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    database_name: str = os.getenv("DATABASE_NAME", "inventory")
    db_timeout_ms: int = int(os.getenv("DB_TIMEOUT_MS", "5000"))

    port: int = int(os.getenv("PORT", "3000"))
    cors_origins: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "*"))


settings = Settings()
