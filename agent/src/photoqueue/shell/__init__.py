"""Shell module: versioned resource cache and fetch routing."""

from photoqueue.shell.cache import Cache, CacheStorage, GenerationState, ShellCacheManager
from photoqueue.shell.fetch import Fetcher, HttpFetcher, Request, Response
from photoqueue.shell.interceptor import FetchInterceptor, Route

__all__ = [
    "Cache",
    "CacheStorage",
    "FetchInterceptor",
    "Fetcher",
    "GenerationState",
    "HttpFetcher",
    "Request",
    "Response",
    "Route",
    "ShellCacheManager",
]
