"""
rate_limit.py

Process-wide FIFO request queue that keeps outbound catalog traffic under the
upstream rate limit. A single drain task sends one request at a time, sleeping
a fixed interval before each call. Throttled (429) requests stay at the head of
the queue and are retried after a cooldown, up to a bounded number of attempts.
"""
import json
import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, NamedTuple, Optional

import httpx

from mangaverse.core.config import settings
from mangaverse.services.catalog_errors import (
    CatalogAPIError,
    CatalogNetworkError,
    CatalogUnavailableError,
    CatalogResponseError,
    RateLimitExceeded,
)

logger = logging.getLogger(__name__)


class CatalogRequest(NamedTuple):
    method: str
    url: str
    params: Optional[Dict[str, Any]] = None
    body: Optional[Dict[str, Any]] = None

    def cache_key(self) -> str:
        params = json.dumps(self.params, sort_keys=True) if self.params else ""
        body = json.dumps(self.body, sort_keys=True) if self.body else ""
        return f"{self.method.upper()}:{self.url}:{params}:{body}"


class QueueItem:
    __slots__ = ("request", "future", "throttled")

    def __init__(self, request: CatalogRequest, future: "asyncio.Future"):
        self.request = request
        self.future = future
        self.throttled = 0


class RequestQueue:
    """Serializes catalog HTTP calls. Every outbound request must go through `enqueue`."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        interval: float = settings.request_interval_seconds,
        cooldown: float = settings.throttle_cooldown_seconds,
        max_throttle_retries: int = settings.max_throttle_retries,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._http = http
        self.interval = interval
        self.cooldown = cooldown
        self.max_throttle_retries = max_throttle_retries
        self._sleep = sleep
        self._items: Deque[QueueItem] = deque()
        self._draining = False
        self._task: Optional[asyncio.Task] = None
        self.calls_made = 0

    @property
    def pending(self) -> int:
        return len(self._items)

    @property
    def draining(self) -> bool:
        return self._draining

    def enqueue(self, request: CatalogRequest) -> "asyncio.Future":
        """Append a request and return a future resolved with its decoded JSON body."""
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._items.append(QueueItem(request, future))
        # Only one drain loop at a time; later enqueues just extend the queue.
        if not self._draining:
            self._draining = True
            self._task = loop.create_task(self._drain())
        return future

    async def _drain(self) -> None:
        try:
            while self._items:
                item = self._items[0]
                if item.future.done():
                    # Caller gave up (timeout/cancel) before we got to it.
                    self._items.popleft()
                    continue

                await self._sleep(self.interval)
                if item.future.done():
                    # Abandoned while we were waiting for our slot.
                    self._items.popleft()
                    continue
                try:
                    response = await self._send(item.request)
                except CatalogAPIError as e:
                    self._items.popleft()
                    self._reject(item, e)
                    continue

                if response.status_code == 429:
                    item.throttled += 1
                    if item.throttled > self.max_throttle_retries:
                        self._items.popleft()
                        logger.error(f"Giving up on {item.request.url} after {item.throttled} throttled attempts")
                        self._reject(item, RateLimitExceeded(
                            f"Rate limit exceeded for {item.request.url}",
                            url=item.request.url,
                            attempts=item.throttled,
                        ))
                        continue
                    delay = self._cooldown_for(response)
                    logger.warning(
                        f"Catalog throttled {item.request.url} (attempt {item.throttled}/{self.max_throttle_retries}), "
                        f"cooling down {delay}s"
                    )
                    await self._sleep(delay)
                    continue

                self._items.popleft()
                try:
                    self._resolve(item, self._decode(item.request, response))
                except CatalogAPIError as e:
                    self._reject(item, e)
        finally:
            self._draining = False

    async def _send(self, request: CatalogRequest) -> httpx.Response:
        self.calls_made += 1
        try:
            return await self._http.request(request.method, request.url, params=request.params, json=request.body)
        except httpx.TimeoutException:
            logger.error(f"Network timeout calling {request.url}")
            raise CatalogNetworkError(f"Network timeout calling {request.url}", url=request.url)
        except httpx.RequestError as e:
            logger.error(f"Network error calling {request.url}: {e}")
            raise CatalogNetworkError(f"Network error calling {request.url}: {e}", url=request.url)
        except Exception as e:
            logger.error(f"Unexpected error calling {request.url}: {e}")
            raise CatalogAPIError(f"Unexpected error calling {request.url}: {e}", url=request.url)

    def _decode(self, request: CatalogRequest, response: httpx.Response) -> Any:
        status = response.status_code
        if status in (502, 503, 504):
            raise CatalogUnavailableError(
                f"Catalog unavailable (status {status}) for {request.url}", status_code=status, url=request.url
            )
        if status >= 400:
            raise CatalogAPIError(f"Catalog returned HTTP {status} for {request.url}", status_code=status, url=request.url)
        try:
            return response.json()
        except ValueError as e:
            raise CatalogResponseError(f"Malformed response from {request.url}: {e}", status_code=status, url=request.url)

    def _cooldown_for(self, response: httpx.Response) -> float:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return max(self.cooldown, float(retry_after))
            except ValueError:
                pass
        return self.cooldown

    @staticmethod
    def _resolve(item: QueueItem, payload: Any) -> None:
        if not item.future.done():
            item.future.set_result(payload)

    @staticmethod
    def _reject(item: QueueItem, error: Exception) -> None:
        if not item.future.done():
            # The traceback would pin the drain loop's frame; a caller clearing
            # it (assertRaises, traceback.clear_frames) would kill the loop.
            item.future.set_exception(error.with_traceback(None))
