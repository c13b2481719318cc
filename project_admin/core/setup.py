"""
Application setup and initialization.

Early initialization that must finish before the FastAPI application is
created:
- Environment variable loading
- Logging configuration
- Environment validation
- Sentry initialization
"""
import os

from dotenv import load_dotenv

from project_admin.config.environment import Settings, validate_environment
from project_admin.config.sentry import init_sentry
from project_admin.utils.errors import ConfigurationError
from project_admin.utils.logger import configure_logging, get_logger


def setup_application(**overrides) -> Settings:
    """
    Initialize application environment and configuration.

    The order is fixed:
    1. Load `.env` (variables already set in the process win)
    2. Configure logging, from the raw environment since settings are not
       validated yet
    3. Validate the environment; failure stops startup before anything binds
    4. Initialize Sentry with the validated settings

    Returns:
        Validated, immutable settings

    Raises:
        ConfigurationError: If a required variable is missing or invalid
    """
    load_dotenv()

    configure_logging(
        log_level=os.getenv("LOG_LEVEL", "info"),
        log_format=os.getenv("LOG_FORMAT", "json"),
    )
    logger = get_logger(__name__)

    try:
        settings = validate_environment(**overrides)
    except ConfigurationError as e:
        logger.critical(
            "Environment validation failed - application cannot start",
            errors=e.errors,
        )
        raise

    init_sentry(
        settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=settings.sentry_traces_sample_rate,
    )
    return settings
