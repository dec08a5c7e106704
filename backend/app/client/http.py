"""Async HTTP client for the course platform API with transparent token refresh."""

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class AuthenticationRequired(Exception):
    """The session cannot be recovered; the user has to sign in again."""


class TokenStore:
    """Holds the current access/refresh token pair."""

    def __init__(self, access_token: str | None = None, refresh_token: str | None = None):
        self.access_token = access_token
        self.refresh_token = refresh_token

    def save(self, access_token: str, refresh_token: str) -> None:
        self.access_token = access_token
        self.refresh_token = refresh_token

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None


class RefreshState(str, enum.Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


RefreshFunc = Callable[[str], Awaitable[tuple[str, str]]]


class TokenRefreshCoordinator:
    """Single-flight access token refresh.

    The first caller that hits an expired session moves the coordinator from
    IDLE to REFRESHING and performs the refresh. Callers arriving meanwhile
    park a future keyed by their original request. When the refresh ends,
    every parked future is resolved with the new access token (or rejected
    with the same failure) before the state returns to IDLE.
    """

    def __init__(
        self,
        refresh: RefreshFunc,
        tokens: TokenStore,
        on_auth_failure: Callable[[], None] | None = None,
    ):
        self._refresh = refresh
        self._tokens = tokens
        self._on_auth_failure = on_auth_failure
        self._state = RefreshState.IDLE
        self._waiting: dict[httpx.Request, asyncio.Future[str]] = {}

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def waiting(self) -> int:
        return len(self._waiting)

    async def fresh_access_token(self, request: httpx.Request) -> str:
        if self._state is RefreshState.REFRESHING:
            future = asyncio.get_running_loop().create_future()
            self._waiting[request] = future
            return await future

        self._state = RefreshState.REFRESHING
        try:
            access_token = await self._run_refresh()
        except AuthenticationRequired as exc:
            self._settle(error=exc)
            raise
        except BaseException:
            self._settle(error=AuthenticationRequired("Token refresh was interrupted."))
            raise
        self._settle(token=access_token)
        return access_token

    async def _run_refresh(self) -> str:
        refresh_token = self._tokens.refresh_token
        if not refresh_token:
            self._fail()
            raise AuthenticationRequired("No refresh token available.")
        try:
            access_token, new_refresh_token = await self._refresh(refresh_token)
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.info("Token refresh failed: %s", exc)
            self._fail()
            raise AuthenticationRequired("Session expired.") from exc

        self._tokens.save(access_token, new_refresh_token)
        return access_token

    def _fail(self) -> None:
        self._tokens.clear()
        if self._on_auth_failure is not None:
            self._on_auth_failure()

    def _settle(self, token: str | None = None, error: BaseException | None = None) -> None:
        waiting, self._waiting = self._waiting, {}
        self._state = RefreshState.IDLE
        for future in waiting.values():
            if future.done():
                continue
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(token)


class ApiClient:
    """Thin wrapper over ``httpx.AsyncClient``.

    Injects the bearer token, raises ``httpx.HTTPStatusError`` for error
    responses, and retries an authenticated request once after a 401 using a
    refreshed access token.
    """

    def __init__(
        self,
        base_url: str,
        tokens: TokenStore | None = None,
        on_auth_failure: Callable[[], None] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        self.tokens = tokens or TokenStore()
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.refresher = TokenRefreshCoordinator(self._refresh_tokens, self.tokens, on_auth_failure)

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        sent_token = self.tokens.access_token
        headers = {"Authorization": f"Bearer {sent_token}"} if sent_token else {}
        request = self._client.build_request(method, url, params=params, json=json, headers=headers)

        response = await self._client.send(request)
        # Anonymous requests (login, signup) report 401 as-is.
        if response.status_code == 401 and sent_token:
            await response.aclose()
            if self.tokens.access_token and self.tokens.access_token != sent_token:
                # Another request already refreshed the session.
                access_token = self.tokens.access_token
            else:
                access_token = await self.refresher.fresh_access_token(request)
            request.headers["Authorization"] = f"Bearer {access_token}"
            response = await self._client.send(request)

        response.raise_for_status()
        return response

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def _refresh_tokens(self, refresh_token: str) -> tuple[str, str]:
        # Not routed through ``request``: a 401 here ends the session.
        response = await self._client.post("/auth/refresh", json={"refreshToken": refresh_token})
        response.raise_for_status()
        data = response.json()["data"]
        return data["accessToken"], data["refreshToken"]
