"""HTTP management client.

Talks to the JSON management endpoint (``/management``, port 9990 by
default) with HTTP digest authentication. Every operation is a POST of the
operation node; failed operations come back as HTTP 500 with an
``outcome: failed`` body, which is a normal result, not a transport error.
"""
import logging
from json import JSONDecodeError
from typing import Any, Optional

import httpx

from .client import ManagementClient, ManagementTransportError, ServerConfig
from .result import ModelNodeResult
from ..utils.connection import with_retry
from ..utils.logging_config import timed

logger = logging.getLogger(__name__)


class HttpManagementClient(ManagementClient):
    """Management client using the HTTP/JSON management API."""

    def __init__(
        self,
        server_id: str,
        config: ServerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(server_id, config)
        self._http: Optional[httpx.AsyncClient] = None
        # Injectable for tests (httpx.MockTransport)
        self._transport = transport
        scheme = "https" if config.protocol == "https" else "http"
        self._url = f"{scheme}://{config.host}:{config.port}/management"

    @property
    def url(self) -> str:
        return self._url

    @with_retry(max_attempts=3, min_wait=1, max_wait=10)
    async def connect(self) -> bool:
        """Open the HTTP session and verify it by reading the server version."""
        logger.info(f"Connecting to {self.server_id} at {self._url}")

        if self._http is None:
            auth = None
            if self.config.username:
                auth = httpx.DigestAuth(self.config.username, self.config.get_password())
            self._http = httpx.AsyncClient(
                auth=auth,
                timeout=httpx.Timeout(self.config.timeout),
                verify=self.config.verify_ssl,
                transport=self._transport,
            )

        self._connected = True
        try:
            version = await self.version()
        except Exception:
            self._connected = False
            await self._http.aclose()
            self._http = None
            raise
        logger.info(f"Connected to {self.server_id} (management version {version})")
        return True

    async def disconnect(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
        self._connected = False
        logger.info(f"Disconnected from {self.server_id}")

    @timed("execute")
    async def execute(self, operation: dict[str, Any]) -> ModelNodeResult:
        if self._http is None or not self._connected:
            raise ManagementTransportError(f"Not connected to {self.server_id}")

        logger.debug(f"{self.server_id} <- {operation}")
        resp = await self._http.post(
            self._url,
            json=operation,
            headers={"Accept": "application/json"},
        )

        if resp.status_code in (401, 403):
            raise ManagementTransportError(
                f"Authentication to {self.server_id} failed (HTTP {resp.status_code})"
            )

        try:
            body = resp.json()
        except (JSONDecodeError, ValueError) as e:
            raise ManagementTransportError(
                f"Unexpected response from {self.server_id} (HTTP {resp.status_code}): "
                f"{resp.text[:200]}"
            ) from e

        if not isinstance(body, dict) or "outcome" not in body:
            raise ManagementTransportError(
                f"Response from {self.server_id} has no outcome: {str(body)[:200]}"
            )

        result = ModelNodeResult(body)
        logger.debug(f"{self.server_id} -> {result!r}")
        return result
