"""All course platform database models.

Import all models here so Alembic and SQLAlchemy can discover them.
"""

from app.models.base import Base, BaseModel  # noqa: F401

# User & Auth
from app.models.user import Token, User  # noqa: F401

# Courses
from app.models.course import Course  # noqa: F401
