"""Course request/response schemas."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import Field

from app.models.enums import CourseLevel
from app.schemas import CamelModel


class CourseCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: str | None = None
    level: CourseLevel = CourseLevel.BEGINNER
    price: Decimal = Field(Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    is_free: bool = False
    is_published: bool = False


class CourseUpdate(CamelModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    level: CourseLevel | None = None
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    is_free: bool | None = None
    is_published: bool | None = None


class CourseRead(CamelModel):
    id: uuid.UUID
    title: str
    slug: str
    description: str | None
    level: CourseLevel
    price: Decimal
    is_free: bool
    is_published: bool
    instructor_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime
