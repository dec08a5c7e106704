"""Course catalogue model."""

import uuid
from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel, enum_column_type
from app.models.enums import CourseLevel


class Course(BaseModel):
    __tablename__ = "course"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    level: Mapped[CourseLevel] = mapped_column(
        enum_column_type(CourseLevel, "course_level"),
        default=CourseLevel.BEGINNER,
        server_default=CourseLevel.BEGINNER.value,
        nullable=False,
    )
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    is_free: Mapped[bool] = mapped_column(default=False, server_default="false", nullable=False)
    is_published: Mapped[bool] = mapped_column(default=False, server_default="false", nullable=False)
    instructor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("user.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        Index("ix_course_level", "level"),
        Index("ix_course_is_published", "is_published"),
    )
