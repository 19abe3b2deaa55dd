"""
GameApiClient - HTTP client for the backend game service.

The client is immutable: its base address and bearer token live in a frozen
ApiClientConfig, and refreshing the token returns a new client. Transport
problems never raise; they come back as ApiResponse(success=False) so the
protocol layer handles them the same way as application errors.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any

import aiohttp

from models.api import ApiResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiClientConfig:
    """Connection settings for the game backend."""

    base_url: str
    auth_token: str | None = None
    timeout_seconds: float = 10.0

    def __post_init__(self):
        if not self.base_url:
            raise ValueError("base_url is required")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))


class GameApiClient:
    """
    Envelope-aware JSON client.

    Every backend response is `{success, data?, message?, error?}`;
    success=false is a failure regardless of HTTP status.
    """

    def __init__(self, config: ApiClientConfig, session: aiohttp.ClientSession | None = None):
        self.config = config
        self._session = session

    @classmethod
    def from_config(
        cls,
        backend_config: dict,
        auth_token: str | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> "GameApiClient":
        """Build from the BACKEND config section."""
        return cls(
            ApiClientConfig(
                base_url=backend_config["base_url"],
                auth_token=auth_token,
                timeout_seconds=backend_config.get("timeout_seconds", 10),
            ),
            session=session,
        )

    def with_token(self, auth_token: str | None) -> "GameApiClient":
        """Return a new client carrying `auth_token`; this client is unchanged."""
        return GameApiClient(replace(self.config, auth_token=auth_token), session=self._session)

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.config.auth_token:
            headers["Authorization"] = f"Bearer {self.config.auth_token}"
        return headers

    async def get(self, path: str, params: dict[str, Any] | None = None) -> ApiResponse:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, body: dict[str, Any] | None = None) -> ApiResponse:
        return await self.request("POST", path, body=body if body is not None else {})

    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> ApiResponse:
        """
        Send one request and decode the envelope.

        Returns:
            ApiResponse; success=False on transport, decode or application failure
        """
        url = f"{self.config.base_url}{path}"
        if params:
            params = {k: str(v) for k, v in params.items() if v is not None}

        try:
            if self._session is not None:
                status, payload = await self._send(self._session, method, url, body, params)
            else:
                async with aiohttp.ClientSession() as session:
                    status, payload = await self._send(session, method, url, body, params)
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.warning(f"{method} {path} failed: {e!r}")
            return ApiResponse(success=False, error=f"Network error: {str(e) or type(e).__name__}")

        return self._decode(method, path, status, payload)

    async def _send(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        body: dict[str, Any] | None,
        params: dict[str, Any] | None,
    ) -> tuple[int, Any]:
        async with session.request(
            method,
            url,
            json=body,
            params=params,
            headers=self._headers(),
            timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds),
        ) as resp:
            try:
                payload = await resp.json(content_type=None)
            except ValueError:
                payload = None
            return resp.status, payload

    def _decode(self, method: str, path: str, status: int, payload: Any) -> ApiResponse:
        if not isinstance(payload, dict) or "success" not in payload:
            logger.warning(f"{method} {path} returned HTTP {status} without an envelope")
            return ApiResponse(
                success=False,
                error=f"Unexpected response from server (HTTP {status})",
                http_status=status,
            )

        success = payload.get("success") is True and status < 400
        message = payload.get("message")
        error = payload.get("error")
        response = ApiResponse(
            success=success,
            data=payload.get("data"),
            message=str(message) if message is not None else None,
            error=str(error) if error is not None else None,
            http_status=status,
        )
        if not success:
            if response.error_message is None:
                response.error = f"Request failed (HTTP {status})"
            logger.debug(f"{method} {path} -> HTTP {status}: {response.error_message}")
        return response
