"""Test data factories using factory-boy."""
import factory

from project_admin.api.middleware.auth import hash_password
from project_admin.models import Project, ProjectStatus, User, UserRole

DEFAULT_PASSWORD = "correct-horse-battery"

# Hash once; bcrypt is deliberately slow
_DEFAULT_PASSWORD_HASH = hash_password(DEFAULT_PASSWORD, rounds=4)


class UserFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Factory for User model."""

    class Meta:
        model = User
        sqlalchemy_session_persistence = "commit"

    name = factory.Faker("name")
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    password_hash = _DEFAULT_PASSWORD_HASH
    role = UserRole.USER
    is_active = True


class ProjectFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Factory for Project model."""

    class Meta:
        model = Project
        sqlalchemy_session_persistence = "commit"

    name = factory.Sequence(lambda n: f"Project {n}")
    description = factory.Faker("sentence")
    status = ProjectStatus.ACTIVE
    owner = factory.SubFactory(UserFactory)
