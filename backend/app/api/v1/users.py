"""User management endpoints (admin only)."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import require_admin
from app.core.exceptions import NotFoundError
from app.core.pagination import create_paginated_response, parse_query_params
from app.database import get_db
from app.models.user import User
from app.schemas.user import UserCreate, UserRead, UserUpdate
from app.services.user import EmailAlreadyExists, UserService

router = APIRouter(prefix="/admin/users", tags=["admin-users"])


def _user_payload(user: User) -> dict:
    return UserRead.model_validate(user).model_dump(mode="json", by_alias=True)


def _email_conflict() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Email already registered.",
    )


@router.get("", response_model=dict)
async def list_users(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
):
    """List users: ?page=&limit=&sort=name,-createdAt&<column>=<value>."""
    params = parse_query_params(request.query_params)
    svc = UserService(db)
    users, total = await svc.list_users(params)
    result = create_paginated_response(
        [UserRead.model_validate(u) for u in users], total, params.pagination,
    )
    return result.model_dump(mode="json", by_alias=True)


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
):
    svc = UserService(db)
    try:
        user = await svc.create_user(data)
    except EmailAlreadyExists:
        raise _email_conflict()
    return {"success": True, "data": _user_payload(user)}


@router.get("/{user_id}", response_model=dict)
async def get_user(
    user_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
):
    user = await UserService(db).get_user_by_id(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return {"success": True, "data": _user_payload(user)}


@router.patch("/{user_id}", response_model=dict)
async def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
):
    """Partially update email, name, role or password."""
    svc = UserService(db)
    try:
        user = await svc.update_user(user_id, data)
    except EmailAlreadyExists:
        raise _email_conflict()
    if user is None:
        raise NotFoundError("User", user_id)
    return {"success": True, "data": _user_payload(user)}


@router.delete("/{user_id}", response_model=dict)
async def delete_user(
    user_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_admin)],
):
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account.",
        )

    deleted = await UserService(db).delete_user(user_id)
    if not deleted:
        raise NotFoundError("User", user_id)
    return {"success": True, "data": {"message": "User deleted successfully."}}
