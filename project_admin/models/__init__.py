"""
Database models package.

    from project_admin.models import User, Project
    from project_admin.models.enums import UserRole, ProjectStatus
"""

from project_admin.models.enums import ProjectStatus, UserRole
from project_admin.models.database import Project, User

__all__ = [
    "ProjectStatus",
    "UserRole",
    "Project",
    "User",
]
