"""Shared fakes for catalog-facing unit tests."""
import asyncio
from datetime import datetime, timezone

import httpx

from mangaverse.schemas import Candidate, LibraryEntry
from mangaverse.services.catalog_errors import CatalogNetworkError


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def recording_transport(responder, calls, clock=None):
    """MockTransport that logs (time, request) for every call before answering."""
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((clock.now if clock else None, request))
        return responder(request)
    return httpx.MockTransport(handler)


def entry(series_id, title, type="manga", rating=None, external_id=None, status="completed", updated_at=None):
    return LibraryEntry(
        series_id=series_id,
        title=title,
        type=type,
        rating=rating,
        external_id=external_id,
        status=status,
        updated_at=updated_at or datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def candidate(external_id, title, type="manga", genres=None, quality=None, **extra):
    return Candidate(external_id=external_id, title=title, type=type, genres=genres or [], quality_score=quality, **extra)


class FakeJikan:
    def __init__(self, genres_by_id=None, by_genre=None, top=None, failing_ids=(), fail_all=False, fail_candidates=False):
        self.genres_by_id = genres_by_id or {}
        self.by_genre = by_genre or {}
        self.top = top or {}
        self.failing_ids = set(failing_ids)
        self.fail_all = fail_all
        self.fail_candidates = fail_candidates
        self.calls = []

    async def fetch_series_genres(self, external_id, media_type):
        self.calls.append(("genres", external_id, media_type))
        if self.fail_all or external_id in self.failing_ids:
            raise CatalogNetworkError(f"boom {external_id}")
        return list(self.genres_by_id.get(external_id, []))

    async def fetch_by_genre(self, genre, media_type, limit=10, refresh=False):
        self.calls.append(("by_genre", genre, media_type, limit))
        if self.fail_all or self.fail_candidates:
            raise CatalogNetworkError("catalog down")
        return list(self.by_genre.get((genre, media_type), []))[:limit]

    async def fetch_top(self, media_type, page=1, limit=10, refresh=False):
        self.calls.append(("top", media_type, page, limit))
        if self.fail_all or self.fail_candidates:
            raise CatalogNetworkError("catalog down")
        return list(self.top.get(media_type, []))[:limit]

    async def search_titles(self, query, media_type, limit=5):
        self.calls.append(("search", query, media_type))
        return []


class FakeAniList:
    def __init__(self, trending=None, metadata=None, fail_all=False):
        self.trending = trending or {}
        self.metadata = metadata or {}
        self.fail_all = fail_all
        self.calls = []

    async def fetch_trending(self, media_type, page=1, limit=10, refresh=False):
        self.calls.append(("trending", media_type, page, limit))
        if self.fail_all:
            raise CatalogNetworkError("anilist down")
        return list(self.trending.get(media_type, []))[:limit]

    async def fetch_metadata(self, mal_ids, media_type):
        self.calls.append(("metadata", tuple(mal_ids), media_type))
        if self.fail_all:
            raise CatalogNetworkError("anilist down")
        return {str(i): self.metadata[str(i)] for i in mal_ids if str(i) in self.metadata}
