"""Request/response types and the network fetcher used by the shell layer."""

from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable
from urllib.parse import urlsplit

import httpx

from photoqueue import __version__
from photoqueue.exceptions import NetworkError


@dataclass(frozen=True)
class Request:
    """An outgoing request as seen by the fetch interceptor."""

    url: str
    method: str = "GET"
    mode: str = "cors"  # "navigate" for full page loads
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    @property
    def cache_key(self) -> str:
        """Path plus query, the key used for same-origin cache entries."""
        parts = urlsplit(self.url)
        key = parts.path or "/"
        if parts.query:
            key = f"{key}?{parts.query}"
        return key


@dataclass(frozen=True)
class Response:
    """A response body held fully in memory."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def clone(self) -> "Response":
        """Independent copy, safe to store while the original is returned."""
        return replace(self, headers=dict(self.headers))


Fetcher = Callable[[Request], Awaitable[Response]]


class HttpFetcher:
    """Fetcher backed by httpx.AsyncClient.

    Any response, whatever its status, is returned. Only transport failures
    (no response at all) raise NetworkError.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"User-Agent": f"photoqueue-client/{__version__}"},
            transport=transport,
        )

    async def __call__(self, request: Request) -> Response:
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
            )
        except httpx.HTTPError as e:
            raise NetworkError(request.url, e) from e

        return Response(
            status=response.status_code,
            body=response.content,
            headers=dict(response.headers),
            url=str(response.url),
        )

    async def close(self) -> None:
        await self._client.aclose()
