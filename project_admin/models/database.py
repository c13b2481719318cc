"""
SQLAlchemy database models.

- User: account that authenticates against /api/auth
- Project: unit of work owned by a user

Both models inherit from Base and TimestampMixin, providing automatic
created_at and updated_at timestamps.
"""
from sqlalchemy import (
    Boolean,
    Column,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from project_admin.config.database import Base, TimestampMixin
from project_admin.models.enums import ProjectStatus, UserRole


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base, TimestampMixin):
    """
    Application user.

    Emails are stored lower-cased and are unique. Passwords are stored only as
    bcrypt hashes.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(UserRole, values_callable=_enum_values, name="user_role"),
        nullable=False,
        default=UserRole.USER,
    )
    is_active = Column(Boolean, nullable=False, default=True)

    projects = relationship(
        "Project",
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class Project(Base, TimestampMixin):
    """Project owned by a single user."""

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        SQLEnum(ProjectStatus, values_callable=_enum_values, name="project_status"),
        nullable=False,
        default=ProjectStatus.PLANNING,
        index=True,
    )
    owner_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    owner = relationship("User", back_populates="projects")

    def __repr__(self):
        return f"<Project(id={self.id}, name={self.name}, status={self.status})>"
