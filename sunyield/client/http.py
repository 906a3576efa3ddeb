"""Configured request pipeline for the platform API.

Every outgoing request picks its bearer token from the request path: admin
paths carry the admin token, everything else the user token. A 401 from
any request ends the session globally and sends the navigator to the
matching login page.
"""

from typing import Any, Protocol

import httpx
import structlog

from sunyield.config import Settings, settings

from .errors import ApiError, AuthenticationExpiredError, NetworkError, decode_error
from .tokens import TokenStore, token_store_from_settings

logger = structlog.get_logger()


class Navigator(Protocol):
    def redirect(self, path: str) -> None: ...


class RecordingNavigator:
    """Navigator that remembers where the application was sent."""

    def __init__(self, start: str = "/") -> None:
        self.current_path = start
        self.history: list[str] = []

    def redirect(self, path: str) -> None:
        self.history.append(path)
        self.current_path = path


class ApiClient:
    def __init__(
        self,
        config: Settings | None = None,
        tokens: TokenStore | None = None,
        navigator: Navigator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or settings
        self.tokens = tokens or token_store_from_settings(self._config.token_store_path)
        self.navigator = navigator or RecordingNavigator()
        self._base_path = httpx.URL(self._config.api_url).path.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self._config.api_url,
            timeout=httpx.Timeout(self._config.api_timeout_seconds),
            transport=transport,
            event_hooks={
                "request": [self._attach_token],
                "response": [self._handle_auth_failure],
            },
        )

    @property
    def config(self) -> Settings:
        return self._config

    def is_admin_path(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(prefix.rstrip("/") + "/")
            for prefix in self._config.admin_path_prefixes
        )

    def token_for(self, path: str) -> str | None:
        if self.is_admin_path(path):
            return self.tokens.admin_token
        return self.tokens.user_token

    def _relative_path(self, url: httpx.URL) -> str:
        path = url.path
        if self._base_path and path.startswith(self._base_path):
            path = path[len(self._base_path):] or "/"
        return path

    async def _attach_token(self, request: httpx.Request) -> None:
        token = self.token_for(self._relative_path(request.url))
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    async def _handle_auth_failure(self, response: httpx.Response) -> None:
        if response.status_code != 401:
            return
        if self.tokens.admin_token:
            self.tokens.clear_admin()
            target = self._config.admin_login_path
        else:
            self.tokens.clear_user()
            target = self._config.user_login_path
        logger.warning(
            "session_expired",
            path=self._relative_path(response.request.url),
            redirect=target,
        )
        self.navigator.redirect(target)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._http.request(
                method, path, json=json, params=params, files=files, data=data
            )
        except httpx.TimeoutException as exc:
            logger.warning("api_timeout", method=method, path=path)
            raise NetworkError(f"Request timed out: {method} {path}") from exc
        except httpx.TransportError as exc:
            logger.warning("api_transport_error", method=method, path=path, error=str(exc))
            raise NetworkError(str(exc) or "Network error") from exc

        if response.status_code == 401:
            raise AuthenticationExpiredError()
        if response.is_error:
            error: ApiError = decode_error(response)
            logger.info(
                "api_error",
                method=method,
                path=path,
                status_code=response.status_code,
                kind=error.kind.value,
            )
            raise error
        return _decode_body(response)

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
