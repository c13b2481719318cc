"""Sentry error tracking configuration."""
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from project_admin.utils.logger import get_logger

logger = get_logger(__name__)

SENSITIVE_HEADERS = ("authorization", "cookie", "set-cookie")
SENSITIVE_KEYS = ("password", "token", "secret", "jwt")


def init_sentry(
    dsn: Optional[str],
    environment: str = "development",
    traces_sample_rate: float = 0.0,
    release: Optional[str] = None,
) -> bool:
    """
    Initialize Sentry error tracking.

    Called from `setup_application()` right after the environment has been
    validated, so configuration errors are reported by the logger only.

    Args:
        dsn: Sentry DSN; when empty, error tracking stays disabled
        environment: Deployment environment reported with every event
        traces_sample_rate: Fraction of transactions to trace
        release: Optional release identifier

    Returns:
        True if the SDK was initialized
    """
    if not dsn:
        logger.info("Sentry DSN not configured, error tracking disabled")
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        traces_sample_rate=traces_sample_rate,
        send_default_pii=False,
        integrations=[
            SqlalchemyIntegration(),
            # Log records become breadcrumbs; errors are sent explicitly
            LoggingIntegration(level=None, event_level=None),
        ],
        before_send=filter_sensitive_data,
    )
    logger.info("Sentry initialized", environment=environment, release=release)
    return True


def filter_sensitive_data(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Strip credentials from Sentry events before they leave the process.

    Removes authorization and cookie headers from request data, keeps only the
    id and email of the user context, and drops extra-context keys that look
    like passwords, tokens or secrets.
    """
    request = event.get("request")
    if request and isinstance(request.get("headers"), dict):
        for header in list(request["headers"].keys()):
            if header.lower() in SENSITIVE_HEADERS:
                request["headers"].pop(header, None)

    if "user" in event:
        event["user"] = {
            "id": event["user"].get("id"),
            "email": event["user"].get("email"),
        }

    if "extra" in event:
        for key in list(event["extra"].keys()):
            if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
                event["extra"].pop(key, None)

    return event


def capture_exception(
    exception: BaseException,
    level: str = "error",
    context: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    """
    Capture an exception to Sentry with additional context.

    Args:
        exception: The exception to capture
        level: Severity level (debug, info, warning, error, fatal)
        context: Named context blocks attached to the event
        tags: Tags to attach to the event

    Returns:
        Event ID if Sentry is configured, None otherwise
    """
    with sentry_sdk.new_scope() as scope:
        scope.set_level(level)
        for key, value in (context or {}).items():
            scope.set_context(key, value if isinstance(value, dict) else {"value": value})
        for key, value in (tags or {}).items():
            scope.set_tag(key, value)
        return sentry_sdk.capture_exception(exception)


def add_breadcrumb(
    message: str,
    category: str = "default",
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """Add a breadcrumb to Sentry."""
    sentry_sdk.add_breadcrumb(
        message=message,
        category=category,
        level=level,
        data=data or {},
    )
