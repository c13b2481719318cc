"""Cross-origin policy.

The origin check is a pure function over an allow-list so it can be tested
without an application. `build_cors_policy()` assembles the allow-list from the
fixed development/production origins plus the configured frontend URL.
"""
import enum
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional, Tuple

from project_admin.config.environment import Settings

DEFAULT_ALLOWED_ORIGINS: Tuple[str, ...] = (
    "http://localhost:3000",
    "http://localhost:5173",
    "https://admin-project-system-frontend.vercel.app",
)

ALLOWED_METHODS: Tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH")
ALLOWED_HEADERS: Tuple[str, ...] = ("Content-Type", "Authorization")
PREFLIGHT_MAX_AGE_SECONDS = 600


class CorsDecision(str, enum.Enum):
    """Outcome of the origin check."""

    ALLOW = "allow"
    DENY = "deny"


def evaluate_origin(origin: Optional[str], allowed_origins: Iterable[str]) -> CorsDecision:
    """
    Decide whether a request origin may access the API.

    Requests without an Origin header (same-origin, curl, server-to-server) are
    allowed. Anything else must match an allow-list entry exactly.
    """
    if not origin:
        return CorsDecision.ALLOW
    if origin in allowed_origins:
        return CorsDecision.ALLOW
    return CorsDecision.DENY


@dataclass(frozen=True)
class CorsPolicy:
    """Immutable CORS configuration shared by all requests."""

    allowed_origins: FrozenSet[str]
    allowed_methods: Tuple[str, ...] = ALLOWED_METHODS
    allowed_headers: Tuple[str, ...] = ALLOWED_HEADERS
    allow_credentials: bool = True

    def evaluate(self, origin: Optional[str]) -> CorsDecision:
        return evaluate_origin(origin, self.allowed_origins)

    def response_headers(self, origin: str) -> dict:
        """Headers for an allowed cross-origin response rendered outside `CORSMiddleware`."""
        headers = {
            "Access-Control-Allow-Origin": origin,
            "Vary": "Origin",
        }
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        return headers

    def middleware_options(self) -> dict:
        """Keyword arguments for Starlette's `CORSMiddleware`."""
        return {
            "allow_origins": sorted(self.allowed_origins),
            "allow_credentials": self.allow_credentials,
            "allow_methods": list(self.allowed_methods),
            "allow_headers": list(self.allowed_headers),
            "max_age": PREFLIGHT_MAX_AGE_SECONDS,
        }


def build_cors_policy(settings: Settings) -> CorsPolicy:
    """Build the policy from the fixed origins and FRONTEND_URL."""
    return CorsPolicy(
        allowed_origins=frozenset((*DEFAULT_ALLOWED_ORIGINS, settings.frontend_url)),
    )
