"""
Status and role enumerations for database models.

Enums are string enums so they serialize to JSON and store as plain strings.
"""
import enum


class UserRole(str, enum.Enum):
    """User role enumeration."""

    ADMIN = "admin"
    USER = "user"


class ProjectStatus(str, enum.Enum):
    """Project status enumeration."""

    PLANNING = "planning"
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
