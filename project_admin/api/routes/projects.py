"""Project endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from project_admin.api.middleware.auth import get_current_user
from project_admin.config.database import get_db
from project_admin.models import Project, ProjectStatus, User
from project_admin.utils.errors import ForbiddenError, NotFoundError
from project_admin.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


class ProjectRequest(BaseModel):
    """Request model for creating or replacing a project."""

    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: ProjectStatus = ProjectStatus.PLANNING


class ProjectPatchRequest(BaseModel):
    """Request model for partial project updates."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: Optional[ProjectStatus] = None


def serialize_project(project: Project) -> dict:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "status": project.status.value,
        "owner_id": project.owner_id,
        "created_at": project.created_at.isoformat() if project.created_at else None,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }


def _get_accessible_project(db: Session, project_id: int, user: User) -> Project:
    """Load a project the user owns (or any project, for administrators)."""
    project = db.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project", project_id)
    if project.owner_id != user.id and not user.is_admin:
        raise ForbiddenError("You do not have access to this project")
    return project


@router.get("")
def list_projects(
    status_filter: Optional[ProjectStatus] = Query(default=None, alias="status"),
    skip: int = Query(default=0, ge=0, description="Number of records to skip"),
    limit: int = Query(default=100, ge=1, le=1000, description="Maximum number of records to return"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List projects.

    Regular users see their own projects; administrators see every project.
    """
    query = db.query(Project)
    if not current_user.is_admin:
        query = query.filter(Project.owner_id == current_user.id)
    if status_filter is not None:
        query = query.filter(Project.status == status_filter)

    total = query.count()
    projects = query.order_by(Project.id).offset(skip).limit(limit).all()
    return {
        "success": True,
        "data": [serialize_project(project) for project in projects],
        "total": total,
        "skip": skip,
        "limit": limit,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    request: ProjectRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a project owned by the caller."""
    project = Project(
        name=request.name.strip(),
        description=request.description,
        status=request.status,
        owner_id=current_user.id,
    )
    db.add(project)
    db.commit()
    db.refresh(project)

    logger.info("Project created", project_id=project.id, owner_id=current_user.id)
    return {"success": True, "data": serialize_project(project)}


@router.get("/{project_id}")
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get project by ID."""
    project = _get_accessible_project(db, project_id, current_user)
    return {"success": True, "data": serialize_project(project)}


@router.put("/{project_id}")
def replace_project(
    project_id: int,
    request: ProjectRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Replace name, description and status of a project."""
    project = _get_accessible_project(db, project_id, current_user)
    project.name = request.name.strip()
    project.description = request.description
    project.status = request.status
    db.commit()
    db.refresh(project)

    logger.info("Project replaced", project_id=project.id, by=current_user.id)
    return {"success": True, "data": serialize_project(project)}


@router.patch("/{project_id}")
def update_project(
    project_id: int,
    request: ProjectPatchRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update only the fields present in the request body."""
    project = _get_accessible_project(db, project_id, current_user)
    changes = request.model_dump(exclude_unset=True)
    for field, value in changes.items():
        # description may be cleared; name and status may not
        if value is None and field != "description":
            continue
        setattr(project, field, value.strip() if field == "name" else value)
    db.commit()
    db.refresh(project)

    logger.info("Project updated", project_id=project.id, fields=sorted(changes), by=current_user.id)
    return {"success": True, "data": serialize_project(project)}


@router.delete("/{project_id}")
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a project."""
    project = _get_accessible_project(db, project_id, current_user)
    db.delete(project)
    db.commit()

    logger.info("Project deleted", project_id=project_id, by=current_user.id)
    return {"success": True, "message": "Project deleted"}
