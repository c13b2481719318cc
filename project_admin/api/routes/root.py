"""
Root and liveness endpoints.

Both endpoints are unauthenticated and never touch the database: they report
that the process is up, not that every dependency is healthy.
"""
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

API_VERSION = "1.0.0"

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    success: bool
    message: str
    timestamp: str


class RootResponse(BaseModel):
    """Root endpoint response."""

    success: bool
    message: str
    version: str


def utc_timestamp() -> str:
    """Current instant as ISO-8601 in UTC with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Liveness probe.

    **Returns:**
    - `success`: always true
    - `message`: "API is healthy"
    - `timestamp`: current time, ISO-8601 UTC
    """
    return HealthResponse(success=True, message="API is healthy", timestamp=utc_timestamp())


@router.get("/", response_model=RootResponse)
async def root():
    """Root endpoint with the API version."""
    return RootResponse(success=True, message="API Running", version=API_VERSION)
