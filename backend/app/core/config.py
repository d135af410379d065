"""Application configuration with validation."""

from enum import Enum
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ConfigurationError(Exception):
    """Raised when application configuration is invalid for the environment."""
    pass


_DEFAULT_JWT_SECRET = "dev-insecure-key-change-me"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Values come from environment variables (case-insensitive) or a ``.env``
    file next to the process working directory.
    """

    # Environment
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/production)"
    )

    # CORS Configuration
    cors_allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///./docvault.db",
        description="Database connection URL"
    )
    # Connection pool tuning (PostgreSQL only; ignored for SQLite).
    db_pool_size: int = Field(
        default=5,
        description="Number of persistent database connections"
    )
    db_max_overflow: int = Field(
        default=10,
        description="Extra connections allowed during traffic bursts"
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Seconds to wait for a connection from the pool before raising"
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Seconds before a connection is recycled"
    )

    # Authentication
    # Tokens are issued by the identity provider; this service only verifies them.
    # AUTH_ENABLED=false trusts the X-User-Id header (development only).
    auth_enabled: bool = Field(
        default=False,
        description="Require a signed bearer token on every request"
    )
    jwt_secret_key: str = Field(
        default=_DEFAULT_JWT_SECRET,
        description="JWT verification secret (override in production)"
    )
    jwt_algorithm: str = Field(default="HS256")
    dev_user_id: str = Field(
        default="dev-user",
        description="Identity used in development mode when no X-User-Id header is sent"
    )

    # File storage
    upload_dir: str = Field(
        default="./uploads",
        description="Root directory holding uploaded file bytes"
    )

    # Folder tree
    max_folder_depth: int = Field(
        default=1000,
        ge=1,
        description="Upper bound on ancestor walks (cycle checks, breadcrumbs)"
    )

    # Activity log
    activity_dedup_seconds: int = Field(
        default=10,
        ge=0,
        description="Window in which a repeated (document, user, kind) activity is dropped"
    )

    # Pagination
    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=100, ge=1)

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: 'json' for structured, 'text' for human-readable"
    )

    def get_cors_origins(self) -> List[str]:
        """Get CORS origins as a list. Wildcards are rejected."""
        origins = [origin.strip() for origin in self.cors_allowed_origins.split(',') if origin.strip()]

        if "*" in origins:
            raise ValueError(
                "Wildcard CORS (*) not allowed. "
                "Specify explicit origins in CORS_ALLOWED_ORIGINS"
            )

        return origins

    def is_postgresql(self) -> bool:
        return self.database_url.startswith("postgresql")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in ("json", "text"):
            raise ValueError("Invalid log format. Must be 'json' or 'text'")
        return v_lower

    def insecure_settings(self) -> List[str]:
        """List security-relevant settings that still use development defaults."""
        problems: List[str] = []

        if self.jwt_secret_key == _DEFAULT_JWT_SECRET:
            problems.append(
                "JWT_SECRET_KEY is using the default insecure value. "
                "Generate a secure key: openssl rand -hex 32"
            )

        if not self.auth_enabled:
            problems.append(
                "AUTH_ENABLED is false. Any caller can act as any user via X-User-Id."
            )

        localhost_origins = [
            o for o in self.get_cors_origins() if "localhost" in o or "127.0.0.1" in o
        ]
        if localhost_origins:
            problems.append(
                f"CORS allows localhost origins: {localhost_origins}. "
                "Remove localhost origins for production."
            )

        return problems

    def validate_production_config(self) -> None:
        """Fail startup in production if security-critical settings are insecure.

        Raises:
            ConfigurationError: If production config is insecure.
        """
        if self.environment != Environment.PRODUCTION:
            return

        errors = self.insecure_settings()
        if errors:
            raise ConfigurationError(
                "Production configuration is insecure:\n  - " + "\n  - ".join(errors)
            )

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Default settings instance for the process. Components receive settings
# explicitly; this is only the value create_app() falls back to.
settings = Settings()
