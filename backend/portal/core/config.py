from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Any, Optional
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


def parse_csv_list(v: str) -> List[str]:
    """Parse a comma-separated environment value into a list of trimmed items"""
    if not v:
        return []
    return [item.strip() for item in v.split(',') if item.strip()]


class Settings(BaseSettings):
    """Gateway settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "Campus Portal Gateway"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database (local read-model store)
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./portal.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 0
    DB_ECHO: bool = False

    # ==========================================
    # Upstream academic-records backend
    # ==========================================
    UPSTREAM_API_URL: str = "http://localhost:8080"
    UPSTREAM_API_TOKEN: str = ""
    UPSTREAM_CONNECT_TIMEOUT: float = 10.0  # seconds
    UPSTREAM_REQUEST_TIMEOUT: float = 30.0  # seconds

    # ==========================================
    # Cache
    # ==========================================
    CACHE_TTL_UPSTREAM: int = 300  # 5 minutes

    # ==========================================
    # Authentication (identity provider tokens)
    # ==========================================
    JWT_SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # ==========================================
    # Enrollment rules
    # ==========================================
    VALID_ENROLLMENT_STATUSES_STR: str = "Verified By Cashier,Verified By Head Dept"

    @property
    def VALID_ENROLLMENT_STATUSES(self) -> List[str]:
        return parse_csv_list(self.VALID_ENROLLMENT_STATUSES_STR)

    # ==========================================
    # Chat assistant
    # ==========================================
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_BASE_URL: str = ""  # Empty means use default Anthropic URL
    CHAT_MODEL: str = "claude-3-5-haiku-20241022"
    CHAT_MAX_TOKENS: int = 1024
    CHAT_TEMPERATURE: float = 0.5
    CHAT_SYSTEM_PROMPT: str = (
        "You are the academic portal assistant. Answer questions about classes, "
        "schedules, grades and enrollment briefly and accurately."
    )

    # ==========================================
    # CORS
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Request limits
    # ==========================================
    MAX_REQUEST_SIZE: int = 10 * 1024 * 1024  # 10MB, attachments included
    SLOW_REQUEST_THRESHOLD_MS: int = 2000

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/gateway.log"  # Empty disables the file handler
    LOG_JSON: Optional[bool] = None  # Defaults to True in production

    @field_validator("UPSTREAM_API_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("UPSTREAM_API_TOKEN")
    @classmethod
    def strip_token_quotes(cls, v: str) -> str:
        # Values copied from .env files may keep their surrounding quotes
        return v.strip().strip('"').strip("'")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings


# Create settings instance
settings = Settings()
