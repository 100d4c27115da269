"""
Application configuration using Pydantic Settings.

Loads environment variables and provides typed configuration access
for the parser, pricing evaluator and audit engine.
"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

# Bundled reference data ships inside the package
DATA_DIR = Path(__file__).parent.parent / "data"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Medical Bill Auditor"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Reference pricing data (CMS national payment amount file, processed)
    FEE_SCHEDULE_PATH: str = str(DATA_DIR / "medicare_fee_schedule.json")

    # Persistence - SQLite by default for local use
    DATABASE_URL: str = "sqlite:///./medbill_auditor.db"

    # Pricing multipliers (industry averages relative to Medicare)
    FAIR_PRICE_TOLERANCE: float = 1.1
    COMMERCIAL_MULTIPLIER: float = 2.5
    HIGH_OUTLIER_MULTIPLIER: float = 4.0

    # Audit scoring
    DISPUTE_OVERCHARGE_THRESHOLD: float = 50.0
    SEVERITY_WEIGHTS: dict[str, int] = {"critical": 25, "warning": 10, "info": 3}
    OVERCHARGE_RATIO_WEIGHT: int = 30

    # Text recognition
    OCR_LANGUAGE: str = "eng"
    OCR_CONFIG: str = "--oem 3 --psm 6"  # LSTM engine, uniform block of text
    OCR_MAX_DIMENSION: int = 3000

    # Error tracking
    SENTRY_DSN: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
