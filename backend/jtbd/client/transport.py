"""
HTTP transport for the JTBD service

``BackendClient`` owns the connection, the bearer token and the request
timeout, and turns every failure into an error from ``jtbd.core.errors``.
Creates go through ``create_with_retry``, the single place where the retry
policy lives.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID, uuid4

import httpx

from jtbd.client.config import ClientSettings, get_client_settings
from jtbd.core.errors import (ConflictError, TransientError,
                              error_from_response)
from jtbd.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class BackendClient:
    """Async request/response access to the named collections"""

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings or get_client_settings()
        self.token = token
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=httpx.Timeout(self.settings.request_timeout_seconds),
            transport=transport,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def set_token(self, token: Optional[str]) -> None:
        self.token = token

    # ------------------------------------------------------------------
    # Raw requests
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> Any:
        """
        Send one request with a single bounded wait

        ``token`` overrides the client token for this request only.

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            TransientError: timeout, connection failure, 502/503/504
            JtbdError: any other error response, typed by status
        """
        token = token or self.token
        headers = {"Authorization": f"Bearer {token}"} if token else None
        if params:
            params = {k: str(v) if isinstance(v, UUID) else v for k, v in params.items() if v is not None}

        try:
            response = await self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out")
            raise TransientError(detail=f"{method} {path}: {type(e).__name__}") from e
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {type(e).__name__}")
            raise TransientError(
                "Could not reach the server. Please check your connection.",
                code="network",
                detail=f"{method} {path}: {e!r}",
            ) from e

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            error = error_from_response(response.status_code, body)
            logger.debug(
                f"{method} {path} -> {response.status_code}",
                extra={"error_code": error.code},
            )
            raise error

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------
    # Collection access
    # ------------------------------------------------------------------

    async def select(self, collection: str, **filters: Any) -> List[Dict[str, Any]]:
        return await self.request("GET", f"/api/{collection}", params=filters)

    async def fetch(self, collection: str, row_id: Any) -> Dict[str, Any]:
        return await self.request("GET", f"/api/{collection}/{row_id}")

    async def insert(self, collection: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("POST", f"/api/{collection}", json=payload)

    async def update(self, collection: str, row_id: Any, changes: Dict[str, Any]) -> Dict[str, Any]:
        return await self.request("PATCH", f"/api/{collection}/{row_id}", json=changes)

    async def delete(self, collection: str, row_id: Any) -> None:
        await self.request("DELETE", f"/api/{collection}/{row_id}")

    async def create_with_retry(self, collection: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a row, retrying transient failures with capped exponential backoff

        The row id is fixed before the first attempt. If an attempt timed out
        after the write landed, the retry is rejected as a duplicate id and the
        stored row is fetched and returned instead.

        Raises:
            TransientError: still failing after the last attempt
            JtbdError: any terminal error, never retried
        """
        payload = dict(payload)
        if not payload.get("id"):
            payload["id"] = str(uuid4())
        max_attempts = self.settings.create_max_attempts

        attempt = 0
        while True:
            attempt += 1
            try:
                return await self.insert(collection, payload)
            except ConflictError as e:
                if attempt > 1 and e.code == "duplicate_id":
                    logger.info(
                        f"Insert into {collection} landed on an earlier attempt; fetching stored row",
                        extra={"row_id": payload["id"], "attempt": attempt},
                    )
                    return await self.fetch(collection, payload["id"])
                raise
            except TransientError:
                if attempt >= max_attempts:
                    logger.warning(f"Insert into {collection} failed after {attempt} attempts")
                    raise
                delay = self.settings.backoff_delay(attempt)
                logger.warning(
                    f"Insert into {collection} failed (attempt {attempt}/{max_attempts}), "
                    f"retrying in {delay:.2f}s"
                )
                await self._sleep(delay)
