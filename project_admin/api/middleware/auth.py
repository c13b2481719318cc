"""JWT authentication and password hashing."""
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from project_admin.config.database import get_db
from project_admin.config.environment import Settings
from project_admin.models import User
from project_admin.utils.errors import ForbiddenError, UnauthorizedError

# auto_error=False so a missing header is reported through UnauthorizedError
security = HTTPBearer(auto_error=False)


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(
    data: dict, settings: Settings, expires_delta: Optional[timedelta] = None
) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    # JWT exp claim must be numeric
    to_encode.update({"exp": int(expire.timestamp())})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        UnauthorizedError: If the token is invalid, expired, or has no subject
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise UnauthorizedError("Could not validate credentials")
    if payload.get("sub") is None:
        raise UnauthorizedError("Could not validate credentials")
    return payload


def issue_token_for(user: User, settings: Settings) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role.value}, settings)


def get_settings(request: Request) -> Settings:
    """Settings of the running application."""
    return request.app.state.settings


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """Get current authenticated user from the bearer token."""
    if credentials is None:
        raise UnauthorizedError("Authentication required")

    payload = decode_access_token(credentials.credentials, settings)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError("Could not validate credentials")

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError("User no longer exists or is inactive")
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency that only lets administrators through."""
    if not current_user.is_admin:
        raise ForbiddenError("Administrator access required")
    return current_user
