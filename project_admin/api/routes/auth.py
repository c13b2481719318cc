"""Registration, login and current-user endpoints."""
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from project_admin.api.middleware.auth import (
    get_current_user,
    get_settings,
    hash_password,
    issue_token_for,
    verify_password,
)
from project_admin.api.routes.users import serialize_user
from project_admin.config.database import get_db
from project_admin.config.environment import Settings
from project_admin.models import User, UserRole
from project_admin.utils.errors import ConflictError, UnauthorizedError
from project_admin.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class RegisterRequest(BaseModel):
    """Request model for account registration."""

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginRequest(BaseModel):
    """Request model for login."""

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Create an account and return an access token.

    The first account ever created is made an administrator so a fresh
    deployment can be managed without manual database edits.
    """
    if db.query(User).filter(User.email == request.email).first():
        raise ConflictError("Email is already registered", details={"email": request.email})

    is_first_user = db.query(User).count() == 0
    user = User(
        name=request.name.strip(),
        email=request.email,
        password_hash=hash_password(request.password, rounds=settings.bcrypt_rounds),
        role=UserRole.ADMIN if is_first_user else UserRole.USER,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User registered", user_id=user.id, role=user.role.value)
    return {
        "success": True,
        "data": {"user": serialize_user(user), "token": issue_token_for(user, settings)},
    }


@router.post("/login")
def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Exchange email and password for an access token."""
    user = db.query(User).filter(User.email == request.email).first()
    if user is None or not verify_password(request.password, user.password_hash):
        logger.warning("Failed login attempt", email=request.email)
        raise UnauthorizedError("Invalid email or password")
    if not user.is_active:
        raise UnauthorizedError("Account is deactivated")

    logger.info("User logged in", user_id=user.id)
    return {
        "success": True,
        "data": {"user": serialize_user(user), "token": issue_token_for(user, settings)},
    }


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user."""
    return {"success": True, "data": serialize_user(current_user)}
