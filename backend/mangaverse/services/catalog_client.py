"""
catalog_client.py

Owns the shared network resources for the catalog gateway: one httpx client,
one rate-limited request queue and the response caches. Constructed once per
process (FastAPI startup) and passed to the provider clients, so tests can
build isolated instances with fake transports.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from mangaverse.core.config import settings
from mangaverse.services.rate_limit import CatalogRequest, RequestQueue
from mangaverse.services.response_cache import MISS, ResponseCache

logger = logging.getLogger(__name__)

USER_AGENT = "MangaVerse/1.0 (+recommendations)"


class CatalogClient:
    def __init__(
        self,
        http: Optional[httpx.AsyncClient] = None,
        queue: Optional[RequestQueue] = None,
        candidate_cache: Optional[ResponseCache] = None,
        search_cache: Optional[ResponseCache] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._owns_http = http is None
        if http is None:
            http = httpx.AsyncClient(
                timeout=settings.http_timeout_seconds,
                headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            )
        self.http = http
        # Explicit None checks: an empty ResponseCache is falsy.
        self.queue = queue if queue is not None else RequestQueue(self.http, sleep=sleep)
        if candidate_cache is None:
            candidate_cache = ResponseCache(settings.candidate_cache_ttl, settings.candidate_cache_size, name="candidate")
        if search_cache is None:
            search_cache = ResponseCache(settings.search_cache_ttl, settings.search_cache_size, name="search")
        self.candidate_cache = candidate_cache
        self.search_cache = search_cache
        self._inflight: Dict[str, asyncio.Future] = {}

    async def fetch(
        self, request: CatalogRequest, cache: Optional[ResponseCache] = None,
        bypass_cache: bool = False, key: Optional[str] = None,
    ) -> Any:
        """Return the decoded JSON for `request`, from cache when fresh.

        Identical requests already waiting in the queue are shared rather than
        enqueued twice. `bypass_cache` skips the lookup but still stores the result.
        `key` overrides the cache key derived from the request.
        """
        cache = cache if cache is not None else self.candidate_cache
        key = key or request.cache_key()

        cached = cache.get(key, bypass=bypass_cache)
        if cached is not MISS:
            logger.debug(f"{cache.name} cache hit: {key}")
            return cached

        pending = self._inflight.get(key)
        if pending is None:
            pending = self.queue.enqueue(request)
            self._inflight[key] = pending

            def _settle(future: asyncio.Future, key: str = key, cache: ResponseCache = cache) -> None:
                self._inflight.pop(key, None)
                if not future.cancelled() and future.exception() is None:
                    cache.put(key, future.result())

            pending.add_done_callback(_settle)

        # One caller abandoning the wait must not cancel it for the others.
        return await asyncio.shield(pending)

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
