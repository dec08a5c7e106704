"""User management service."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import ParsedListQuery, SortingItem
from app.core.security import hash_password
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate
from app.services.query_builder import ColumnDescriptor, ColumnKind, ListingService, TableSpec

logger = logging.getLogger(__name__)

USERS_TABLE = TableSpec(
    columns={
        "id": ColumnDescriptor(User.id, ColumnKind.EXACT),
        "email": ColumnDescriptor(User.email, ColumnKind.TEXT),
        "name": ColumnDescriptor(User.name, ColumnKind.TEXT),
        "role": ColumnDescriptor(User.role, ColumnKind.EXACT),
        "createdAt": ColumnDescriptor(User.created_at, ColumnKind.EXACT),
        "updatedAt": ColumnDescriptor(User.updated_at, ColumnKind.EXACT),
    },
    default_sort=(SortingItem(id="createdAt", desc=True),),
    tie_breaker=User.id,
)


class EmailAlreadyExists(Exception):
    pass


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: uuid.UUID) -> User | None:
        return await self.db.get(User, user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def list_users(self, params: ParsedListQuery) -> tuple[list[User], int]:
        """Filtered, sorted page of users. Returns (users, total)."""
        return await ListingService(self.db).fetch_page(select(User), USERS_TABLE, params)

    async def create_user(self, data: UserCreate) -> User:
        if await self.get_user_by_email(data.email) is not None:
            raise EmailAlreadyExists(data.email)

        user = User(
            id=uuid.uuid4(),
            email=data.email,
            password_hash=hash_password(data.password),
            name=data.name,
            role=data.role,
        )
        self.db.add(user)
        await self.db.flush()
        logger.info("Created user %s with role %s", user.id, user.role.value)
        return user

    async def update_user(self, user_id: uuid.UUID, data: UserUpdate) -> User | None:
        """Apply the provided fields. Returns None if the user does not exist."""
        user = await self.get_user_by_id(user_id)
        if user is None:
            return None

        if data.email is not None and data.email != user.email:
            if await self.get_user_by_email(data.email) is not None:
                raise EmailAlreadyExists(data.email)
            user.email = data.email
        if data.name is not None:
            user.name = data.name
        if data.role is not None:
            user.role = data.role
        if data.password is not None:
            user.password_hash = hash_password(data.password)

        await self.db.flush()
        return user

    async def delete_user(self, user_id: uuid.UUID) -> bool:
        """Hard-delete a user; their tokens go with them."""
        user = await self.get_user_by_id(user_id)
        if user is None:
            return False
        await self.db.delete(user)
        await self.db.flush()
        logger.info("Deleted user %s", user_id)
        return True
