"""User management endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from project_admin.api.middleware.auth import get_current_user, require_admin
from project_admin.config.database import get_db
from project_admin.models import User, UserRole
from project_admin.utils.errors import ForbiddenError, NotFoundError, ValidationError
from project_admin.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


class UpdateUserRequest(BaseModel):
    """Request model for updating a user. Only provided fields change."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


def serialize_user(user: User) -> dict:
    """Public representation of a user (never includes the password hash)."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "is_active": user.is_active,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


@router.get("")
def list_users(
    skip: int = Query(default=0, ge=0, description="Number of records to skip"),
    limit: int = Query(default=100, ge=1, le=1000, description="Maximum number of records to return"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """List all users (administrators only)."""
    query = db.query(User).order_by(User.id)
    total = query.count()
    users = query.offset(skip).limit(limit).all()
    return {
        "success": True,
        "data": [serialize_user(user) for user in users],
        "total": total,
        "skip": skip,
        "limit": limit,
    }


@router.get("/{user_id}")
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Get a user by ID. Users may read themselves; administrators anyone."""
    if user_id != current_user.id and not current_user.is_admin:
        raise ForbiddenError("You can only view your own account")
    return {"success": True, "data": serialize_user(_get_user_or_404(db, user_id))}


@router.patch("/{user_id}")
def update_user(
    user_id: int,
    request: UpdateUserRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Update a user.

    Users may change their own name. Role and active flag can only be changed
    by an administrator, and an administrator cannot demote or deactivate
    themselves.
    """
    is_self = user_id == current_user.id
    if not is_self and not current_user.is_admin:
        raise ForbiddenError("You can only update your own account")

    changes = request.model_dump(exclude_unset=True)
    privileged = {"role", "is_active"} & changes.keys()
    if privileged and not current_user.is_admin:
        raise ForbiddenError("Only administrators can change role or active status")
    if privileged and is_self:
        raise ValidationError(
            "Administrators cannot change their own role or active status",
            details={"fields": sorted(privileged)},
        )

    user = _get_user_or_404(db, user_id)
    for field, value in changes.items():
        if value is None:
            continue
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    logger.info("User updated", user_id=user.id, fields=sorted(changes), by=current_user.id)
    return {"success": True, "data": serialize_user(user)}


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Delete a user and their projects (administrators only, not themselves)."""
    if user_id == admin.id:
        raise ValidationError("Administrators cannot delete their own account")

    user = _get_user_or_404(db, user_id)
    db.delete(user)
    db.commit()
    logger.info("User deleted", user_id=user_id, by=admin.id)
    return {"success": True, "message": "User deleted"}
