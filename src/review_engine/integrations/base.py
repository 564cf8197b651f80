"""Shared HTTP plumbing for external service clients."""

from __future__ import annotations

from typing import Any

import httpx

from review_engine.errors import DownstreamError
from review_engine.logging import get_logger

logger = get_logger(__name__)


class ServiceClient:
    """Base client holding a lazily created httpx.AsyncClient.

    Subclasses set ``error_code`` and ``service_name``; every transport or
    status failure is logged and raised as a DownstreamError with that code.
    No retries are attempted.
    """

    error_code = "DOWNSTREAM_ERROR"
    service_name = "service"

    def __init__(
        self,
        base_url: str,
        auth_token: str | None = None,
        timeout_seconds: int = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.auth_token = auth_token
        self.timeout_seconds = timeout_seconds
        self.logger = get_logger(__name__).bind(service=self.service_name)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.auth_token:
                headers["Authorization"] = f"Bearer {self.auth_token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            self.logger.error(
                f"{self.service_name}_request_error",
                path=path,
                error=str(e),
            )
            raise DownstreamError(
                self.error_code,
                f"{self.service_name} request failed",
                {"path": path},
            ) from e

        if not response.is_success:
            self.logger.error(
                f"{self.service_name}_request_failed",
                path=path,
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise DownstreamError(
                self.error_code,
                f"{self.service_name} returned {response.status_code}",
                {"path": path, "status_code": response.status_code},
            )
        return response

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._request("GET", path, params=params)
        try:
            return response.json()
        except ValueError as e:
            self.logger.error(f"{self.service_name}_invalid_json", path=path)
            raise DownstreamError(
                self.error_code,
                f"{self.service_name} returned invalid JSON",
                {"path": path},
            ) from e
