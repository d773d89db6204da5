import unittest

from fastapi.testclient import TestClient

from mangaverse.api.deps import get_gateway, get_recommendation_service
from mangaverse.main import app
from mangaverse.schemas import TitleSearchResult
from mangaverse.services.catalog_errors import CatalogUnavailableError, RateLimitExceeded
from mangaverse.services.catalog_gateway import CatalogGateway
from mangaverse.services.recommendation_service import RecommendationService
from catalog_fakes import FakeAniList, FakeJikan, candidate


class StubSearchGateway:
    def __init__(self, results=None, error=None):
        self.results = results or []
        self.error = error
        self.queries = []

    async def search_titles(self, query, media_type, limit=5):
        self.queries.append((query, media_type))
        if self.error:
            raise self.error
        return self.results


def library_payload(count):
    return [
        {"series_id": str(i), "title": f"Owned {i}", "type": "manga", "rating": 5.0,
         "external_id": str(i), "status": "completed"}
        for i in range(1, count + 1)
    ]


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def use_service(self, jikan, anilist):
        service = RecommendationService(CatalogGateway(None, jikan=jikan, anilist=anilist))
        app.dependency_overrides[get_recommendation_service] = lambda: service

    def use_gateway(self, gateway):
        app.dependency_overrides[get_gateway] = lambda: gateway


class TestForYou(ApiTestCase):
    def test_established_library(self):
        jikan = FakeJikan(
            genres_by_id={str(i): ["Action"] for i in range(1, 6)},
            by_genre={("Action", "manga"): [
                candidate("700", "Kingdom", genres=["Action"], quality=8.8, status="Publishing", chapters=800),
            ]},
        )
        self.use_service(jikan, FakeAniList())
        response = self.client.post("/api/recommendations/for-you", json={"library": library_payload(5)})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["tier"], "established")
        self.assertEqual(body["count"], 1)
        self.assertEqual(body["recommendations"][0]["external_id"], "700")
        self.assertEqual(body["profile"]["top_genres"], ["Action"])

    def test_total_failure_is_bad_gateway(self):
        self.use_service(FakeJikan(fail_all=True), FakeAniList(fail_all=True))
        response = self.client.post("/api/recommendations/for-you", json={"library": []})
        self.assertEqual(response.status_code, 502)

    def test_invalid_rating_rejected(self):
        self.use_service(FakeJikan(), FakeAniList())
        payload = {"library": [{"series_id": "1", "title": "A", "type": "manga", "rating": 9}]}
        response = self.client.post("/api/recommendations/for-you", json=payload)
        self.assertEqual(response.status_code, 422)


class TestContinueEndpoint(ApiTestCase):
    def test_continue(self):
        library = [
            {"series_id": "1", "title": "Reading Now", "type": "manga", "status": "reading",
             "updated_at": "2024-05-02T10:00:00Z", "last_progress": 42},
            {"series_id": "2", "title": "Done", "type": "manga", "status": "completed"},
        ]
        response = self.client.post("/api/recommendations/continue", json={"library": library})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["count"], 1)
        self.assertEqual(body["recommendations"][0]["last_progress"], 42)
        self.assertEqual(body["recommendations"][0]["recommendation_type"], "continue")


class TestTitleSearchEndpoint(ApiTestCase):
    def test_returns_results(self):
        gateway = StubSearchGateway(results=[TitleSearchResult(external_id="13", title="One Piece", type="manga")])
        self.use_gateway(gateway)
        response = self.client.get("/api/title-search", params={"q": "one piece", "type": "manga"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["results"][0]["title"], "One Piece")
        self.assertEqual(gateway.queries, [("one piece", "manga")])

    def test_blank_query_skips_catalog(self):
        gateway = StubSearchGateway()
        self.use_gateway(gateway)
        response = self.client.get("/api/title-search", params={"q": "  "})
        self.assertEqual(response.json(), {"results": [], "error": None})
        self.assertEqual(gateway.queries, [])

    def test_rate_limit_returns_empty_with_error(self):
        self.use_gateway(StubSearchGateway(error=RateLimitExceeded("throttled", attempts=6)))
        response = self.client.get("/api/title-search", params={"q": "naruto"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"results": [], "error": "Rate limit reached"})

    def test_upstream_failure_is_bad_gateway(self):
        self.use_gateway(StubSearchGateway(error=CatalogUnavailableError("down", status_code=503)))
        response = self.client.get("/api/title-search", params={"q": "naruto"})
        self.assertEqual(response.status_code, 502)

    def test_unknown_type_rejected(self):
        self.use_gateway(StubSearchGateway())
        response = self.client.get("/api/title-search", params={"q": "naruto", "type": "novel"})
        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
