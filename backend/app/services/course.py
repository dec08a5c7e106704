"""Course catalogue service."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import ParsedListQuery, SortingItem
from app.models.course import Course
from app.schemas.course import CourseCreate, CourseUpdate
from app.services.query_builder import ColumnDescriptor, ColumnKind, ListingService, TableSpec

logger = logging.getLogger(__name__)

_COURSE_COLUMNS = {
    "title": ColumnDescriptor(Course.title, ColumnKind.TEXT),
    "slug": ColumnDescriptor(Course.slug, ColumnKind.TEXT),
    "level": ColumnDescriptor(Course.level, ColumnKind.EXACT),
    "isFree": ColumnDescriptor(Course.is_free, ColumnKind.BOOLEAN),
    "price": ColumnDescriptor(Course.price, ColumnKind.EXACT),
    "createdAt": ColumnDescriptor(Course.created_at, ColumnKind.EXACT),
}

# Public catalogue: only published rows are ever visible.
PUBLIC_COURSES_TABLE = TableSpec(
    columns=_COURSE_COLUMNS,
    default_sort=(SortingItem(id="createdAt", desc=True),),
    tie_breaker=Course.id,
)

ADMIN_COURSES_TABLE = TableSpec(
    columns={
        **_COURSE_COLUMNS,
        "isPublished": ColumnDescriptor.for_column(Course.is_published),
        "updatedAt": ColumnDescriptor.for_column(Course.updated_at),
    },
    default_sort=(SortingItem(id="createdAt", desc=True),),
    tie_breaker=Course.id,
)


class SlugAlreadyExists(Exception):
    pass


class CourseService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_course(self, course_id: uuid.UUID, published_only: bool = False) -> Course | None:
        query = select(Course).where(Course.id == course_id)
        if published_only:
            query = query.where(Course.is_published.is_(True))
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_published(self, params: ParsedListQuery) -> tuple[list[Course], int]:
        query = select(Course).where(Course.is_published.is_(True))
        return await ListingService(self.db).fetch_page(query, PUBLIC_COURSES_TABLE, params)

    async def list_all(self, params: ParsedListQuery) -> tuple[list[Course], int]:
        return await ListingService(self.db).fetch_page(select(Course), ADMIN_COURSES_TABLE, params)

    async def create_course(self, data: CourseCreate, instructor_id: uuid.UUID | None) -> Course:
        existing = await self.db.execute(select(Course.id).where(Course.slug == data.slug))
        if existing.first() is not None:
            raise SlugAlreadyExists(data.slug)

        course = Course(
            id=uuid.uuid4(),
            instructor_id=instructor_id,
            **data.model_dump(),
        )
        self.db.add(course)
        await self.db.flush()
        logger.info("Created course %s (%s)", course.id, course.slug)
        return course

    async def update_course(self, course_id: uuid.UUID, data: CourseUpdate) -> Course | None:
        course = await self.get_course(course_id)
        if course is None:
            return None
        for field_name, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(course, field_name, value)
        await self.db.flush()
        return course

    async def delete_course(self, course_id: uuid.UUID) -> bool:
        course = await self.get_course(course_id)
        if course is None:
            return False
        await self.db.delete(course)
        await self.db.flush()
        return True
