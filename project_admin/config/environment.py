"""Environment configuration and validation.

Settings are read from process environment variables (and an optional `.env`
file), validated once, and frozen. The resulting `Settings` instance is passed
explicitly to the components that need it; nothing in the application reads
`os.environ` after startup.
"""
from typing import List, Literal, Optional
from urllib.parse import urlparse

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from project_admin.utils.errors import ConfigurationError
from project_admin.utils.logger import get_logger

logger = get_logger(__name__)

ALLOWED_JWT_ALGORITHMS = {"HS256", "HS384", "HS512"}
LOCAL_HOSTNAMES = {"localhost", "127.0.0.1", "::1"}


def validate_url_format(url: str) -> tuple[bool, str]:
    """
    Check that a URL is an absolute http(s) URL with a host.

    Returns:
        (is_valid, error_message) - error_message is empty when valid
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False, f"'{url}' must use http:// or https://"
    if not parsed.netloc:
        return False, f"'{url}' has no host"
    if parsed.path not in ("", "/") or parsed.query or parsed.fragment:
        return False, f"'{url}' must be a bare origin (no path, query or fragment)"
    return True, ""


class Settings(BaseSettings):
    """Validated, immutable application settings."""

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Deployment environment.",
    )

    # Required
    frontend_url: str = Field(
        ...,
        description="Origin of the deployed frontend, added to the CORS allow-list.",
    )
    database_url: str = Field(
        ...,
        description="SQLAlchemy database URL.",
    )
    jwt_secret: str = Field(
        ...,
        min_length=32,
        description="Secret used to sign access tokens (minimum 32 characters).",
    )

    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_minutes: int = Field(
        default=1440,  # 24 hours
        ge=5,
        le=43200,  # 30 days
    )
    bcrypt_rounds: int = Field(default=12, ge=4, le=15)

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000, ge=1, le=65535)

    max_body_bytes: int = Field(
        default=100 * 1024,
        ge=1024,
        description="Largest accepted request body, in bytes.",
    )

    database_startup_mode: Literal["background", "blocking"] = Field(
        default="background",
        description=(
            "background: accept requests while the database connects. "
            "blocking: do not accept requests until the database is ready."
        ),
    )
    database_connect_attempts: int = Field(default=3, ge=1, le=10)
    database_connect_backoff_seconds: float = Field(default=1.0, ge=0.0, le=60.0)

    log_level: str = Field(default="info")
    log_format: Literal["json", "console"] = Field(default="json")

    sentry_dsn: Optional[str] = Field(default=None)
    sentry_traces_sample_rate: float = Field(default=0.0, ge=0.0, le=1.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("frontend_url")
    @classmethod
    def validate_frontend_url(cls, v: str) -> str:
        v = v.strip()
        is_valid, error_msg = validate_url_format(v)
        if not is_valid:
            raise ValueError(error_msg)
        # Browsers never send a trailing slash in Origin
        return v.rstrip("/")

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        v = v.strip()
        # Hosted Postgres providers still hand out the legacy scheme
        if v.startswith("postgres://"):
            v = "postgresql://" + v[len("postgres://"):]
        return v

    @field_validator("jwt_algorithm")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        if v not in ALLOWED_JWT_ALGORITHMS:
            raise ValueError(
                f"JWT algorithm '{v}' is not allowed. "
                f"Allowed algorithms: {', '.join(sorted(ALLOWED_JWT_ALGORITHMS))}"
            )
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _production_errors(settings: Settings) -> List[str]:
    errors: List[str] = []
    parsed = urlparse(settings.frontend_url)
    if parsed.scheme != "https":
        errors.append("FRONTEND_URL must use https:// in production")
    if parsed.hostname in LOCAL_HOSTNAMES:
        errors.append("FRONTEND_URL must not point at localhost in production")
    return errors


def validate_environment(**overrides) -> Settings:
    """
    Load and validate settings from the environment.

    Keyword overrides take precedence over environment variables and are
    mainly used by tests.

    Raises:
        ConfigurationError: If a required variable is missing or a value is invalid
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']).upper()}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigurationError("Environment validation failed", errors=errors) from e

    if settings.is_production:
        errors = _production_errors(settings)
        if errors:
            raise ConfigurationError("Environment validation failed", errors=errors)

    logger.info(
        "Environment validated",
        environment=settings.environment,
        database_startup_mode=settings.database_startup_mode,
    )
    return settings
