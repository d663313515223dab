"""
GeoNames Reconciliation Service - Configuration

Loads settings from environment variables with sensible defaults.
"""

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load .env file
load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (staging area written by scripts/import_geonames.py)
    DATABASE_URL: str = Field(
        default=f"sqlite:///{PROJECT_ROOT}/data/geonames.db"
    )

    @property
    def project_root(self) -> Path:
        """Return project root directory."""
        return PROJECT_ROOT

    # Application
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # Source files (the GeoNames dump is fetched outside this service)
    # DATA_SOURCE: "database" (staging DB) or "tsv" (read the dump directly)
    DATA_SOURCE: str = Field(default="database")
    GEONAMES_TSV: str = Field(default=f"{PROJECT_ROOT}/data/allCountries.txt")
    FEATURE_CODES_TXT: str = Field(default=f"{PROJECT_ROOT}/data/featureCodes_en.txt")

    # Server
    HOST: str = Field(default="127.0.0.1")
    PORT: int = Field(default=8001)
    PUBLIC: bool = Field(default=False)
    RECONCILE_PATH: str = Field(default="/reconcile")

    # Service manifest
    SERVICE_NAME: str = Field(default="GeoNames Reconciliation")
    IDENTIFIER_SPACE: str = Field(default="http://sws.geonames.org/")
    SCHEMA_SPACE: str = Field(default="http://www.geonames.org/ontology#")
    VIEW_URL: str = Field(default="https://www.geonames.org/{{id}}")

    # Batch handling
    DEFAULT_LIMIT: int = Field(default=5)
    MAX_LIMIT: int = Field(default=50)
    MAX_BATCH_SIZE: int = Field(default=1000)
    BATCH_TIMEOUT_SECONDS: float = Field(default=30.0)
    WORKER_CONCURRENCY: int = Field(default=8)

    # Scoring (0-100 scale)
    MATCH_THRESHOLD: int = Field(default=95)
    MATCH_MARGIN: int = Field(default=10)
    TIE_BREAK_MARGIN: int = Field(default=2)
    FUZZY_TOKEN_THRESHOLD: int = Field(default=80)

    # Search index bounds
    FUZZY_EXPANSIONS: int = Field(default=10)
    PREFIX_EXPANSIONS: int = Field(default=200)
    MAX_INDEX_CANDIDATES: int = Field(default=500)
    SUGGEST_LIMIT: int = Field(default=10)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
