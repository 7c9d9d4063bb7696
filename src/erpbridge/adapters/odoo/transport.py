"""JSON-RPC session transport for Odoo."""

from __future__ import annotations

import asyncio
import itertools
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from erpbridge.adapters.http_resilience import ResilientClient
from erpbridge.config.erp import AuthMode, default_odoo_resilience
from erpbridge.domain.errors import (
    AuthenticationError,
    RemoteError,
    RpcError,
    TransportError,
    UnsupportedAuthenticationError,
)

from .schema import JsonRpcErrorPayload, JsonRpcResponse, SessionInfo

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from types import TracebackType

    from erpbridge.config.erp import ErpConfig
    from erpbridge.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

AUTHENTICATE_PATH = "/web/session/authenticate"
CALL_KW_PATH = "/web/dataset/call_kw"
SESSION_COOKIE = "session_id"

_AUTH_ERROR_NAMES = frozenset(
    {
        "odoo.http.SessionExpiredException",
        "odoo.exceptions.AccessDenied",
        "SessionExpiredException",
        "AccessDenied",
    }
)
_SESSION_EXPIRED_CODE = 100
_AUTH_HTTP_STATUSES = frozenset({401, 403})


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class _SessionRejectedError(AuthenticationError):
    """Internal marker: the call failed because the session is no longer valid."""


class OdooTransport:
    """Authenticated JSON-RPC calls against one Odoo database.

    The session is established lazily on the first call. Concurrent first
    calls share a single login; a call that fails with an auth-class error
    logs in again once and is retried a single time.
    """

    def __init__(
        self,
        config: ErpConfig,
        *,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self.config = config
        resilience = config.resilience or default_odoo_resilience(config.base_url)
        self._client = (client_factory or _default_client_factory)(resilience)
        self._base_url = config.base_url.rstrip("/")
        self._auth_lock = asyncio.Lock()
        self._session_id: str | None = None
        self._uid: int | None = None
        self._request_ids = itertools.count(1)

    async def __aenter__(self) -> OdooTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def uid(self) -> int | None:
        return self._uid

    @property
    def is_authenticated(self) -> bool:
        return self._session_id is not None and self._uid is not None

    async def authenticate(self) -> int:
        """Log in and store the session; returns the remote user id."""

        uid, _ = await self._login()
        return uid

    async def _login(self) -> tuple[int, str]:
        match self.config.auth_mode:
            case AuthMode.OAUTH_CLIENT_CREDENTIALS:
                raise UnsupportedAuthenticationError(
                    "OAuth client-credentials authentication is not implemented"
                )
            case AuthMode.PASSWORD:
                pass
            case None:
                raise AuthenticationError("No valid authentication credentials configured")

        log.info("Authenticating against %s (db=%s)", self._base_url, self.config.database)
        params = {
            "db": self.config.database,
            "login": self.config.username,
            "password": self.config.password,
        }
        try:
            response = await self._post(AUTHENTICATE_PATH, params)
            result = self._unwrap(response)
            session = SessionInfo.model_validate(result)
        except (RemoteError, ValidationError) as exc:
            log.error("Authentication against %s failed: %s", self._base_url, exc)
            raise AuthenticationError(f"Failed to authenticate with Odoo: {exc}") from exc

        session_id = session.session_id or response.cookies.get(SESSION_COOKIE)
        if session.uid is None or not session_id:
            log.error("Authentication against %s returned no session", self._base_url)
            raise AuthenticationError("Odoo authentication returned no session")

        self._session_id = session_id
        self._uid = session.uid
        log.info("Authenticated as uid %s", session.uid)
        return session.uid, session_id

    async def call(
        self,
        model: str,
        method: str,
        args: Sequence[Any] = (),
        kwargs: Mapping[str, Any] | None = None,
    ) -> Any:
        session_id = await self._ensure_session()
        try:
            return await self._call_with_session(session_id, model, method, args, kwargs)
        except _SessionRejectedError:
            log.info("Session rejected during %s.%s; re-authenticating", model, method)
            session_id = await self._reauthenticate(session_id)
        try:
            return await self._call_with_session(session_id, model, method, args, kwargs)
        except _SessionRejectedError as exc:
            raise AuthenticationError(str(exc)) from exc

    async def search_read(
        self,
        model: str,
        domain: Sequence[Any],
        *,
        fields: Sequence[str],
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {"fields": list(fields)}
        if limit is not None:
            kwargs["limit"] = limit
        result = await self.call(model, "search_read", [list(domain)], kwargs)
        if not isinstance(result, list):
            raise RpcError(f"Unexpected search_read result for {model}: {result!r}")
        return result  # pyright: ignore[reportUnknownVariableType]

    async def create(self, model: str, values: Mapping[str, Any]) -> int:
        result = await self.call(model, "create", [dict(values)])
        # some versions answer a single-record create with a one-element list
        if isinstance(result, list) and len(result) == 1:  # pyright: ignore[reportUnknownArgumentType]
            result = result[0]  # pyright: ignore[reportUnknownVariableType]
        if not isinstance(result, int) or isinstance(result, bool):
            raise RpcError(f"Unexpected create result for {model}: {result!r}")
        return result

    async def read(
        self,
        model: str,
        ids: Sequence[int],
        *,
        fields: Sequence[str],
    ) -> list[dict[str, Any]]:
        result = await self.call(model, "read", [list(ids)], {"fields": list(fields)})
        if not isinstance(result, list):
            raise RpcError(f"Unexpected read result for {model}: {result!r}")
        return result  # pyright: ignore[reportUnknownVariableType]

    async def ping(self) -> int:
        """Authenticate and run one cheap query; returns the session's user id."""

        uid = await self.authenticate()
        await self.search_read("res.partner", [["is_company", "=", True]], fields=["id"], limit=1)
        return uid

    async def _ensure_session(self) -> str:
        if self._session_id is not None:
            return self._session_id
        async with self._auth_lock:
            if self._session_id is not None:
                return self._session_id
            _, session_id = await self._login()
        return session_id

    async def _reauthenticate(self, failed_session_id: str) -> str:
        async with self._auth_lock:
            current = self._session_id
            # another caller may already have replaced the rejected session
            if current is not None and current != failed_session_id:
                return current
            self._session_id = None
            self._uid = None
            _, session_id = await self._login()
        return session_id

    async def _call_with_session(
        self,
        session_id: str,
        model: str,
        method: str,
        args: Sequence[Any],
        kwargs: Mapping[str, Any] | None,
    ) -> Any:
        params = {
            "model": model,
            "method": method,
            "args": list(args),
            "kwargs": dict(kwargs or {}),
        }
        response = await self._post(
            CALL_KW_PATH,
            params,
            headers={"Cookie": f"{SESSION_COOKIE}={session_id}"},
        )
        return self._unwrap(response)

    async def _post(
        self,
        path: str,
        params: Mapping[str, Any],
        *,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        payload = {
            "jsonrpc": "2.0",
            "method": "call",
            "params": dict(params),
            "id": next(self._request_ids),
        }
        try:
            response = await self._client.post(
                f"{self._base_url}{path}",
                json=payload,
                headers=dict(headers) if headers else None,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Odoo request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Odoo request to {path} failed: {exc}") from exc

        if response.status_code in _AUTH_HTTP_STATUSES:
            raise _SessionRejectedError(f"Odoo rejected the session (HTTP {response.status_code})")
        if response.is_error:
            raise TransportError(f"Odoo request to {path} returned HTTP {response.status_code}")
        return response

    def _unwrap(self, response: httpx.Response) -> Any:
        try:
            envelope = JsonRpcResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise TransportError("Odoo returned a non JSON-RPC response") from exc

        if envelope.error is not None:
            raise _rpc_error(envelope.error)
        return envelope.result


def _rpc_error(error: JsonRpcErrorPayload) -> RpcError | AuthenticationError:
    if error.code == _SESSION_EXPIRED_CODE or error.remote_name in _AUTH_ERROR_NAMES:
        return _SessionRejectedError(f"Odoo session error: {error.detail}")
    return RpcError(
        f"Odoo RPC error: {error.detail}",
        code=error.code,
        remote_name=error.remote_name,
    )
