"""User request/response schemas."""

import uuid
from datetime import datetime

from pydantic import EmailStr, Field

from app.models.enums import UserRole
from app.schemas import CamelModel


class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(min_length=8)
    name: str = Field(min_length=1, max_length=255)
    role: UserRole = UserRole.STUDENT


class UserUpdate(CamelModel):
    email: EmailStr | None = None
    name: str | None = Field(None, min_length=1, max_length=255)
    role: UserRole | None = None
    password: str | None = Field(None, min_length=8)


class UserRead(CamelModel):
    id: uuid.UUID
    email: str
    name: str
    role: UserRole
    created_at: datetime
    updated_at: datetime
