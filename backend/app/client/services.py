"""Typed wrappers over the course platform resource endpoints."""

import uuid

from app.client.http import ApiClient
from app.client.table_state import FilterDef, FilterOption, ListQuery
from app.schemas import PaginatedResult
from app.schemas.course import CourseCreate, CourseRead, CourseUpdate
from app.schemas.user import UserCreate, UserRead, UserUpdate

# Filters offered on the admin users screen; " " is the "all roles" choice.
USER_FILTERS = (
    FilterDef(id="name", label="Name", type="text", placeholder="Filter by name..."),
    FilterDef(id="email", label="Email", type="text", placeholder="Filter by email..."),
    FilterDef(
        id="role",
        label="Role",
        type="select",
        placeholder="All roles",
        options=(
            FilterOption(label="All roles", value=" "),
            FilterOption(label="Admin", value="admin"),
            FilterOption(label="Student", value="student"),
        ),
    ),
)

COURSE_FILTERS = (
    FilterDef(id="title", label="Title", type="text", placeholder="Search courses..."),
    FilterDef(
        id="level",
        label="Level",
        type="select",
        options=(
            FilterOption(label="All levels", value=" "),
            FilterOption(label="Beginner", value="beginner"),
            FilterOption(label="Intermediate", value="intermediate"),
            FilterOption(label="Advanced", value="advanced"),
        ),
    ),
    FilterDef(
        id="isFree",
        label="Price",
        type="select",
        options=(
            FilterOption(label="Any price", value=" "),
            FilterOption(label="Free", value="true"),
            FilterOption(label="Paid", value="false"),
        ),
    ),
)


class AuthApi:
    """Session endpoints. Successful sign-ins are stored on the client's token store."""

    def __init__(self, api: ApiClient):
        self.api = api

    def _remember(self, payload: dict) -> UserRead | None:
        data = payload["data"]
        self.api.tokens.save(data["accessToken"], data["refreshToken"])
        user = data.get("user")
        return UserRead.model_validate(user) if user is not None else None

    async def signup(self, name: str, email: str, password: str) -> UserRead | None:
        response = await self.api.post(
            "/auth/signup", json={"name": name, "email": email, "password": password},
        )
        return self._remember(response.json())

    async def login(self, email: str, password: str) -> UserRead | None:
        response = await self.api.post("/auth/login", json={"email": email, "password": password})
        return self._remember(response.json())

    async def logout(self) -> None:
        try:
            await self.api.post("/auth/logout")
        finally:
            self.api.tokens.clear()

    async def me(self) -> UserRead:
        response = await self.api.get("/auth/me")
        return UserRead.model_validate(response.json()["data"])

    async def forgot_password(self, email: str) -> str:
        response = await self.api.post("/auth/forgot-password", json={"email": email})
        return response.json()["data"]["message"]

    async def reset_password(self, token: str, password: str) -> str:
        response = await self.api.post(
            "/auth/reset-password", json={"token": token, "password": password},
        )
        return response.json()["data"]["message"]


class UsersService:
    path = "/admin/users"

    def __init__(self, api: ApiClient):
        self.api = api

    async def list(self, query: ListQuery) -> PaginatedResult[UserRead]:
        response = await self.api.get(self.path, params=query.to_params())
        return PaginatedResult[UserRead].model_validate(response.json())

    async def get(self, user_id: uuid.UUID) -> UserRead:
        response = await self.api.get(f"{self.path}/{user_id}")
        return UserRead.model_validate(response.json()["data"])

    async def create(self, data: UserCreate) -> UserRead:
        response = await self.api.post(self.path, json=data.model_dump(mode="json", by_alias=True))
        return UserRead.model_validate(response.json()["data"])

    async def update(self, user_id: uuid.UUID, data: UserUpdate) -> UserRead:
        response = await self.api.patch(
            f"{self.path}/{user_id}",
            json=data.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return UserRead.model_validate(response.json()["data"])

    async def delete(self, user_id: uuid.UUID) -> None:
        await self.api.delete(f"{self.path}/{user_id}")


class CoursesService:
    """Public catalogue reads plus admin management when ``admin=True``."""

    def __init__(self, api: ApiClient, admin: bool = False):
        self.api = api
        self.path = "/admin/courses" if admin else "/courses"

    async def list(self, query: ListQuery) -> PaginatedResult[CourseRead]:
        response = await self.api.get(self.path, params=query.to_params())
        return PaginatedResult[CourseRead].model_validate(response.json())

    async def get(self, course_id: uuid.UUID) -> CourseRead:
        response = await self.api.get(f"{self.path}/{course_id}")
        return CourseRead.model_validate(response.json()["data"])

    async def create(self, data: CourseCreate) -> CourseRead:
        response = await self.api.post(
            "/admin/courses", json=data.model_dump(mode="json", by_alias=True),
        )
        return CourseRead.model_validate(response.json()["data"])

    async def update(self, course_id: uuid.UUID, data: CourseUpdate) -> CourseRead:
        response = await self.api.patch(
            f"/admin/courses/{course_id}",
            json=data.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return CourseRead.model_validate(response.json()["data"])

    async def delete(self, course_id: uuid.UUID) -> None:
        await self.api.delete(f"/admin/courses/{course_id}")
