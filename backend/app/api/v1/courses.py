"""Course catalogue endpoints: public listing and admin management."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_admin
from app.core.exceptions import NotFoundError
from app.core.pagination import create_paginated_response, parse_query_params
from app.database import get_db
from app.models.course import Course
from app.models.user import User
from app.schemas.course import CourseCreate, CourseRead, CourseUpdate
from app.services.course import CourseService, SlugAlreadyExists

router = APIRouter(prefix="/courses", tags=["courses"])
admin_router = APIRouter(prefix="/admin/courses", tags=["admin-courses"])


def _course_payload(course: Course) -> dict:
    return CourseRead.model_validate(course).model_dump(mode="json", by_alias=True)


def _page_payload(courses: list[Course], total: int, params) -> dict:
    result = create_paginated_response(
        [CourseRead.model_validate(c) for c in courses], total, params.pagination,
    )
    return result.model_dump(mode="json", by_alias=True)


# --- Public ---

@router.get("", response_model=dict)
async def list_courses(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Published courses: ?page=&limit=&sort=&title=&level=&isFree=."""
    params = parse_query_params(request.query_params)
    courses, total = await CourseService(db).list_published(params)
    return _page_payload(courses, total, params)


@router.get("/{course_id}", response_model=dict)
async def get_course(
    course_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    course = await CourseService(db).get_course(course_id, published_only=True)
    if course is None:
        raise NotFoundError("Course", course_id)
    return {"success": True, "data": _course_payload(course)}


# --- Admin ---

@admin_router.get("", response_model=dict)
async def admin_list_courses(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
):
    params = parse_query_params(request.query_params)
    courses, total = await CourseService(db).list_all(params)
    return _page_payload(courses, total, params)


@admin_router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_course(
    data: CourseCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
):
    try:
        course = await CourseService(db).create_course(data, instructor_id=current_user.id)
    except SlugAlreadyExists:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A course with this slug already exists.",
        )
    return {"success": True, "data": _course_payload(course)}


@admin_router.get("/{course_id}", response_model=dict)
async def admin_get_course(
    course_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
):
    """Any course, published or not."""
    course = await CourseService(db).get_course(course_id)
    if course is None:
        raise NotFoundError("Course", course_id)
    return {"success": True, "data": _course_payload(course)}


@admin_router.patch("/{course_id}", response_model=dict)
async def update_course(
    course_id: uuid.UUID,
    data: CourseUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
):
    course = await CourseService(db).update_course(course_id, data)
    if course is None:
        raise NotFoundError("Course", course_id)
    return {"success": True, "data": _course_payload(course)}


@admin_router.delete("/{course_id}", response_model=dict)
async def delete_course(
    course_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
):
    deleted = await CourseService(db).delete_course(course_id)
    if not deleted:
        raise NotFoundError("Course", course_id)
    return {"success": True, "data": {"message": "Course deleted."}}
