import asyncio
import unittest

import httpx

from mangaverse.services.catalog_client import CatalogClient
from mangaverse.services.catalog_errors import CatalogAPIError
from mangaverse.services.rate_limit import CatalogRequest, RequestQueue
from mangaverse.services.response_cache import ResponseCache
from catalog_fakes import FakeClock, recording_transport


class TestCatalogClient(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.clock = FakeClock()
        self.calls = []
        self.status = 200
        self.http = httpx.AsyncClient(transport=recording_transport(self._respond, self.calls, self.clock))
        self.catalog = CatalogClient(
            http=self.http,
            queue=RequestQueue(self.http, interval=0.25, sleep=self.clock.sleep),
            candidate_cache=ResponseCache(ttl=3600, max_entries=100, clock=self.clock),
            search_cache=ResponseCache(ttl=86400, max_entries=500, clock=self.clock),
        )

    async def asyncTearDown(self):
        await self.http.aclose()

    def _respond(self, request):
        if self.status != 200:
            return httpx.Response(self.status)
        return httpx.Response(200, json={"n": len(self.calls)})

    async def test_injected_empty_caches_are_kept(self):
        cache = ResponseCache(ttl=60, max_entries=10, clock=self.clock)
        search = ResponseCache(ttl=60, max_entries=10, clock=self.clock)
        catalog = CatalogClient(http=self.http, candidate_cache=cache, search_cache=search)
        self.assertIs(catalog.candidate_cache, cache)
        self.assertIs(catalog.search_cache, search)
        self.assertIs(catalog.http, self.http)

    async def test_custom_key_shares_cache_entry(self):
        first = CatalogRequest("GET", "https://catalog.test/anime", params={"q": "Naruto"})
        second = CatalogRequest("GET", "https://catalog.test/anime", params={"q": "NARUTO"})
        await self.catalog.fetch(first, key="anime:naruto")
        await self.catalog.fetch(second, key="anime:naruto")
        self.assertEqual(len(self.calls), 1)
        self.assertEqual(self.calls[0][1].url.params["q"], "Naruto")

    async def test_cached_response_skips_network(self):
        request = CatalogRequest("GET", "https://catalog.test/anime", params={"genres": 1})
        first = await self.catalog.fetch(request)
        second = await self.catalog.fetch(request)
        self.assertEqual(first, second)
        self.assertEqual(len(self.calls), 1)

    async def test_expired_entry_refetches(self):
        request = CatalogRequest("GET", "https://catalog.test/anime")
        await self.catalog.fetch(request)
        self.clock.now += 3600
        await self.catalog.fetch(request)
        self.assertEqual(len(self.calls), 2)

    async def test_bypass_refetches_and_stores(self):
        request = CatalogRequest("GET", "https://catalog.test/anime")
        await self.catalog.fetch(request)
        fresh = await self.catalog.fetch(request, bypass_cache=True)
        self.assertEqual(len(self.calls), 2)
        self.assertEqual(await self.catalog.fetch(request), fresh)
        self.assertEqual(len(self.calls), 2)

    async def test_concurrent_identical_requests_share_one_call(self):
        request = CatalogRequest("GET", "https://catalog.test/manga", params={"page": 1})
        results = await asyncio.gather(*[self.catalog.fetch(request) for _ in range(3)])
        self.assertEqual(len(self.calls), 1)
        self.assertEqual(results[0], results[1])
        self.assertEqual(results[1], results[2])

    async def test_search_cache_is_separate(self):
        request = CatalogRequest("GET", "https://catalog.test/anime", params={"q": "naruto"})
        await self.catalog.fetch(request, cache=self.catalog.search_cache)
        self.assertEqual(len(self.catalog.search_cache), 1)
        self.assertEqual(len(self.catalog.candidate_cache), 0)

    async def test_errors_are_not_cached(self):
        request = CatalogRequest("GET", "https://catalog.test/anime")
        self.status = 500
        with self.assertRaises(CatalogAPIError):
            await self.catalog.fetch(request)
        self.status = 200
        await self.catalog.fetch(request)
        self.assertEqual(len(self.calls), 2)


if __name__ == "__main__":
    unittest.main()
