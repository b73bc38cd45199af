"""Async HTTP client for delivering captures and registering push subscriptions."""

import json
import time
from dataclasses import dataclass
from typing import Any

import httpx

from photoqueue import __version__
from photoqueue.sync.queue import CaptureRecord

# Client errors that still mean "try again later"
TRANSIENT_CLIENT_STATUSES = frozenset({408, 425, 429})


@dataclass
class UploadResult:
    """Result of one delivery attempt."""

    success: bool
    filename: str | None = None
    status_code: int | None = None
    error: str | None = None
    elapsed_ms: float = 0.0

    @property
    def permanent(self) -> bool:
        """True when the server rejected the record itself (non-retryable 4xx)."""
        if self.success or self.status_code is None:
            return False
        return 400 <= self.status_code < 500 and self.status_code not in TRANSIENT_CLIENT_STATUSES


class PhotoUploader:
    """Async HTTP client for the PhotoQueue server.

    Uses httpx.AsyncClient for connection pooling. Each ``upload`` is a single
    attempt: retrying is the sync coordinator's job, on the next trigger.
    """

    def __init__(
        self,
        server_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the uploader.

        Args:
            server_url: Base URL of the server (e.g., http://localhost:3000)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={
                "User-Agent": f"photoqueue-client/{__version__}",
            },
            transport=transport,
        )

    async def upload(self, record: CaptureRecord) -> UploadResult:
        """Deliver one capture record to the server.

        Network errors and non-2xx responses are reported in the result,
        never raised.
        """
        started = time.monotonic()
        try:
            response = await self._client.post(
                f"{self.server_url}/api/upload",
                json={"payload": record.payload, "createdAt": record.created_at},
            )
        except httpx.ConnectError as e:
            return UploadResult(success=False, error=f"Connection error: {e}")
        except httpx.TimeoutException as e:
            return UploadResult(success=False, error=f"Timeout: {e}")
        except httpx.HTTPError as e:
            return UploadResult(success=False, error=f"HTTP error: {e}")

        elapsed_ms = (time.monotonic() - started) * 1000

        if response.is_success:
            try:
                filename = response.json().get("filename")
            except (json.JSONDecodeError, AttributeError):
                filename = None
            return UploadResult(
                success=True,
                filename=filename,
                status_code=response.status_code,
                elapsed_ms=elapsed_ms,
            )

        if 400 <= response.status_code < 500:
            error = f"Client error: {response.status_code} - {response.text}"
        else:
            error = f"Server error: {response.status_code}"
        return UploadResult(
            success=False,
            status_code=response.status_code,
            error=error,
            elapsed_ms=elapsed_ms,
        )

    async def check_server(self) -> bool:
        """Return True if the server answers its liveness probe."""
        try:
            response = await self._client.get(
                f"{self.server_url}/health",
                timeout=httpx.Timeout(5.0),
            )
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def vapid_public_key(self) -> str:
        """Fetch the server's VAPID public key used to create a push subscription.

        Raises:
            httpx.HTTPError: If the server is unreachable or answers non-2xx
        """
        response = await self._client.get(f"{self.server_url}/api/vapidPublicKey")
        response.raise_for_status()
        return response.json()["publicKey"]

    async def subscribe(self, subscription: dict[str, Any]) -> None:
        """Register a push subscription descriptor with the server.

        Raises:
            httpx.HTTPError: If the server is unreachable or rejects the descriptor
        """
        response = await self._client.post(
            f"{self.server_url}/api/subscribe",
            json=subscription,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "PhotoUploader":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()
