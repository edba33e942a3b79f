# fasttrack/adapters/configuration/config.py

import json
from typing import Optional, List, Union
from logging import getLevelName
from pydantic import Field, field_validator, ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Environment
    ENVIRONMENT: str = "development"  # "development", "production", "testing"

    # Database
    DB_DRIVER: str = "asyncpg"
    POSTGRES_USER: str = "fasttrack"
    POSTGRES_PASSWORD: str = "fasttrack"
    POSTGRES_DB: str = "fasttrack"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    TEST_MODE: bool = False
    TEST_POSTGRES_DB: str = ""
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    # Auth
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    MACHINE_TOKEN_EXPIRE_SECONDS: int = 7200
    MACHINE_TOKEN_REFRESH_THRESHOLD_MINUTES: int = 10
    MARKET_DRAFT_EXPIRE_MINUTES: int = 60

    # Token authority
    TOKEN_AUTHORITY_MODE: str = "local"  # "local" or "remote"
    TOKEN_AUTHORITY_URL: Optional[str] = None
    TOKEN_AUTHORITY_TIMEOUT_SECONDS: float = 10.0
    TOKEN_AUTHORITY_INTROSPECTION_CLIENT_ID: Optional[str] = None
    TOKEN_AUTHORITY_INTROSPECTION_CLIENT_SECRET: Optional[str] = None

    # Blob storage
    STORAGE_ROOT: str = "storage"
    MAX_UPLOAD_SIZE_MB: int = 20
    ALLOWED_UPLOAD_CONTENT_TYPES: Union[List[str], str] = [
        "application/pdf",
        "image/jpeg",
        "image/png",
        "application/zip",
        "application/octet-stream",
    ]

    # Background jobs
    ARTIFACT_SWEEP_INTERVAL_SECONDS: int = 15 * 60
    TOKEN_CLEANUP_INTERVAL_SECONDS: int = 24 * 60 * 60

    # HTTP
    BASE_URL: str = "http://localhost:8000"
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:8000", "http://127.0.0.1:8000"]
    USE_HTTPS: bool = False

    # Rate limiting (per client IP, 60-second window)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT_PER_MINUTE: int = 100
    RATE_LIMIT_SENSITIVE_PER_MINUTE: int = 10

    @field_validator("DATABASE_URL", mode="before")
    def assemble_db_url(cls, value, info):
        if value:
            return value

        data = info.data
        db_name = data.get("TEST_POSTGRES_DB") if data.get("TEST_MODE") else data.get("POSTGRES_DB")
        return (
            f"postgresql+{data.get('DB_DRIVER', 'asyncpg')}://"
            f"{data['POSTGRES_USER']}:{data['POSTGRES_PASSWORD']}"
            f"@{data['POSTGRES_HOST']}:{data['POSTGRES_PORT']}/{db_name}"
        )

    @field_validator("CORS_ORIGINS", "ALLOWED_UPLOAD_CONTENT_TYPES", mode="before")
    def assemble_csv_list(cls, v: Union[str, List[str]]) -> List[str]:
        """
        A CSV string (e.g. 'a,b,c') or a JSON array string becomes a list.
        Lists are returned as they are.
        """
        if isinstance(v, str) and v.strip().startswith("["):
            return json.loads(v)
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        if isinstance(v, list):
            return v
        raise ValueError(f"Invalid list value: {v!r}")

    @field_validator("LOG_LEVEL", mode="before")
    def validate_log_level(cls, v: str) -> str:
        """Ensures the value is a valid logging level"""
        lvl = v.upper()
        if not isinstance(getLevelName(lvl), int):
            raise ValueError(f"Invalid LOG_LEVEL: {v!r}")
        return lvl

    @field_validator("TOKEN_AUTHORITY_MODE", mode="before")
    def validate_authority_mode(cls, v: str) -> str:
        mode = (v or "local").lower()
        if mode not in ("local", "remote"):
            raise ValueError(f"TOKEN_AUTHORITY_MODE must be 'local' or 'remote', got {v!r}")
        return mode

    model_config = ConfigDict(env_file=".env")


settings = Settings()
