"""Per-request routing policy for the application shell."""

import logging
from enum import Enum
from urllib.parse import urljoin, urlsplit

from photoqueue.exceptions import NetworkError, StorageError
from photoqueue.shell.cache import CacheStorage
from photoqueue.shell.fetch import Fetcher, Request, Response

logger = logging.getLogger(__name__)


class Route(str, Enum):
    """How a request is served."""

    PASS_THROUGH = "pass_through"  # cross-origin, not intercepted
    NETWORK_ONLY = "network_only"  # API or non-GET, never cached
    NETWORK_FIRST = "network_first"  # navigation
    CACHE_FIRST = "cache_first"  # static assets


class FetchInterceptor:
    """Routes same-origin requests between the network and the shell cache.

    Evaluated in priority order:
    1. cross-origin: not intercepted
    2. non-GET or API path: network only
    3. navigation: network first, then cached page, then offline page
    4. anything else: cache first, filling the cache from the network
    """

    def __init__(
        self,
        storage: CacheStorage,
        fetcher: Fetcher,
        origin: str,
        cache_name: str,
        api_prefix: str = "/api/",
        offline_page: str = "/offline.html",
    ) -> None:
        """Initialize the interceptor.

        Args:
            storage: Cache storage holding the shell generations
            fetcher: Network fetcher
            origin: Origin of the application (scheme://host[:port])
            cache_name: Current cache generation written to on network hits
            api_prefix: Path prefix of the API namespace
            offline_page: Placeholder served to offline navigations
        """
        self._storage = storage
        self._fetcher = fetcher
        self.origin = origin.rstrip("/")
        self.cache_name = cache_name
        self.api_prefix = api_prefix
        self.offline_page = offline_page
        self._origin_parts = urlsplit(self.origin)

    def _absolute(self, request: Request) -> Request:
        url = urljoin(self.origin + "/", request.url)
        if url == request.url:
            return request
        return Request(
            url=url,
            method=request.method,
            mode=request.mode,
            headers=request.headers,
            body=request.body,
        )

    def _same_origin(self, url: str) -> bool:
        parts = urlsplit(url)
        return (parts.scheme.lower(), parts.netloc.lower()) == (
            self._origin_parts.scheme.lower(),
            self._origin_parts.netloc.lower(),
        )

    def route(self, request: Request) -> Route:
        """Decide how a request is served, without performing it."""
        request = self._absolute(request)
        if not self._same_origin(request.url):
            return Route.PASS_THROUGH
        if request.method.upper() != "GET" or urlsplit(request.url).path.startswith(self.api_prefix):
            return Route.NETWORK_ONLY
        if request.mode == "navigate":
            return Route.NETWORK_FIRST
        return Route.CACHE_FIRST

    async def handle(self, request: Request) -> Response | None:
        """Serve a request according to its route.

        Returns:
            The response, or None when the request is not intercepted

        Raises:
            NetworkError: When the network fails and no cached fallback exists
        """
        request = self._absolute(request)
        route = self.route(request)

        if route is Route.PASS_THROUGH:
            return None
        if route is Route.NETWORK_ONLY:
            return await self._fetcher(request)
        if route is Route.NETWORK_FIRST:
            return await self._network_first(request)
        return await self._cache_first(request)

    async def _network_first(self, request: Request) -> Response:
        try:
            response = await self._fetcher(request)
        except NetworkError:
            cached = self._storage.match(request.cache_key)
            if cached is not None:
                return cached
            offline = self._storage.match(self.offline_page)
            if offline is not None:
                return offline
            raise

        self._store(request, response)
        return response

    async def _cache_first(self, request: Request) -> Response:
        cached = self._storage.match(request.cache_key)
        if cached is not None:
            return cached

        response = await self._fetcher(request)
        self._store(request, response)
        return response

    def _store(self, request: Request, response: Response) -> None:
        """Put a copy of a successful network response into the current generation."""
        if not response.ok:
            return
        try:
            self._storage.open(self.cache_name).put(request.cache_key, response.clone())
        except StorageError as e:
            # The network response is still served
            logger.warning(
                "Cache write failed",
                extra={"key": request.cache_key, "cache": self.cache_name, "error": str(e)},
            )
