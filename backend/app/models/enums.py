"""All enum types for the course platform data model."""

import enum


# --- User & Auth Enums ---

class UserRole(str, enum.Enum):
    ADMIN = "admin"
    STUDENT = "student"


class TokenType(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    PASSWORD_RESET = "password_reset"


# --- Course Enums ---

class CourseLevel(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
