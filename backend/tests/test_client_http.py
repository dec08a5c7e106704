import asyncio
import json
import unittest

import httpx

from app.client.http import (
    ApiClient,
    AuthenticationRequired,
    RefreshState,
    TokenRefreshCoordinator,
    TokenStore,
)
from app.client.services import UsersService
from app.client.table_state import ListQuery


class FakeApi:
    """Backend double: only ``access-2`` is accepted once the session has rotated."""

    def __init__(self, refresh_status: int = 200, refresh_delay: float = 0.05):
        self.refresh_status = refresh_status
        self.refresh_delay = refresh_delay
        self.refresh_calls = 0
        self.seen: list[tuple[str, str | None]] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        auth = request.headers.get("Authorization")
        self.seen.append((request.url.path, auth))

        if request.url.path.endswith("/auth/refresh"):
            self.refresh_calls += 1
            await asyncio.sleep(self.refresh_delay)
            if self.refresh_status != 200:
                return httpx.Response(self.refresh_status, json={"success": False})
            body = json.loads(request.content)
            assert body == {"refreshToken": "refresh-1"}
            return httpx.Response(
                200, json={"success": True, "data": {"accessToken": "access-2", "refreshToken": "refresh-2"}},
            )

        if request.url.path.endswith("/auth/login"):
            return httpx.Response(401, json={"success": False})

        if auth != "Bearer access-2":
            return httpx.Response(401, json={"success": False})
        return httpx.Response(
            200,
            json={
                "data": [],
                "pagination": {
                    "page": int(request.url.params.get("page", 1)),
                    "limit": 10,
                    "total": 0,
                    "totalPages": 0,
                    "hasNext": False,
                    "hasPrev": False,
                },
            },
        )


class ApiClientRefreshTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.failures = 0
        self.backend = FakeApi()
        self.tokens = TokenStore("access-1", "refresh-1")

    def _client(self) -> ApiClient:
        def on_failure():
            self.failures += 1

        return ApiClient(
            "http://api.test/api/v1",
            tokens=self.tokens,
            on_auth_failure=on_failure,
            transport=httpx.MockTransport(self.backend),
        )

    async def test_concurrent_401s_share_one_refresh(self):
        async with self._client() as api:
            responses = await asyncio.gather(
                api.get("/admin/users", params={"page": "1"}),
                api.get("/admin/users", params={"page": "2"}),
                api.get("/admin/users", params={"page": "3"}),
            )

        self.assertEqual(self.backend.refresh_calls, 1)
        self.assertEqual([r.status_code for r in responses], [200, 200, 200])
        self.assertEqual(
            sorted(r.json()["pagination"]["page"] for r in responses), [1, 2, 3],
        )
        self.assertEqual((self.tokens.access_token, self.tokens.refresh_token), ("access-2", "refresh-2"))
        self.assertIs(api.refresher.state, RefreshState.IDLE)
        self.assertEqual(api.refresher.waiting, 0)

    async def test_failed_refresh_rejects_every_waiter(self):
        self.backend.refresh_status = 401
        async with self._client() as api:
            results = await asyncio.gather(
                api.get("/admin/users"),
                api.get("/admin/users"),
                return_exceptions=True,
            )

        self.assertEqual(self.backend.refresh_calls, 1)
        self.assertTrue(all(isinstance(r, AuthenticationRequired) for r in results))
        self.assertIsNone(self.tokens.access_token)
        self.assertIsNone(self.tokens.refresh_token)
        self.assertEqual(self.failures, 1)
        self.assertIs(api.refresher.state, RefreshState.IDLE)

    async def test_missing_refresh_token(self):
        self.tokens.refresh_token = None
        async with self._client() as api:
            with self.assertRaises(AuthenticationRequired):
                await api.get("/admin/users")
        self.assertEqual(self.backend.refresh_calls, 0)
        self.assertEqual(self.failures, 1)
        self.assertIsNone(self.tokens.access_token)

    async def test_anonymous_401_is_not_refreshed(self):
        self.tokens.clear()
        async with self._client() as api:
            with self.assertRaises(httpx.HTTPStatusError) as ctx:
                await api.post("/auth/login", json={"email": "a@example.com", "password": "x"})
        self.assertEqual(ctx.exception.response.status_code, 401)
        self.assertEqual(self.backend.refresh_calls, 0)

    async def test_request_after_rotation_reuses_new_token(self):
        async with self._client() as api:
            await api.get("/admin/users")
            await api.get("/admin/users")
        self.assertEqual(self.backend.refresh_calls, 1)
        self.assertEqual(self.backend.seen[-1], ("/api/v1/admin/users", "Bearer access-2"))

    async def test_users_service_parses_the_page(self):
        async with self._client() as api:
            page = await UsersService(api).list(ListQuery(page=2, limit=10))
        self.assertEqual(page.data, [])
        self.assertEqual(page.pagination.page, 2)
        self.assertFalse(page.pagination.has_next)


class TokenRefreshCoordinatorTests(unittest.IsolatedAsyncioTestCase):
    async def test_state_machine_transitions(self):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_refresh(refresh_token: str) -> tuple[str, str]:
            started.set()
            await release.wait()
            return "new-access", "new-refresh"

        tokens = TokenStore("old", "r")
        coordinator = TokenRefreshCoordinator(slow_refresh, tokens)
        self.assertIs(coordinator.state, RefreshState.IDLE)

        leader = asyncio.create_task(coordinator.fresh_access_token(httpx.Request("GET", "http://x/a")))
        await started.wait()
        self.assertIs(coordinator.state, RefreshState.REFRESHING)

        follower = asyncio.create_task(coordinator.fresh_access_token(httpx.Request("GET", "http://x/b")))
        await asyncio.sleep(0)
        self.assertEqual(coordinator.waiting, 1)

        release.set()
        self.assertEqual(await leader, "new-access")
        self.assertEqual(await follower, "new-access")
        self.assertIs(coordinator.state, RefreshState.IDLE)
        self.assertEqual(tokens.refresh_token, "new-refresh")


if __name__ == "__main__":
    unittest.main()
