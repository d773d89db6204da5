"""
Jikan client for MangaVerse.
- Jikan is the public REST mirror of MyAnimeList; library externalIds are MAL ids.
- All calls go through the shared CatalogClient (queue + cache); no retries here.
- Raw payloads are normalized into Candidate / TitleSearchResult before returning.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from mangaverse.core.config import settings
from mangaverse.schemas import Candidate, TitleSearchResult
from mangaverse.services.catalog_client import CatalogClient
from mangaverse.services.catalog_errors import CatalogResponseError
from mangaverse.services.rate_limit import CatalogRequest

logger = logging.getLogger(__name__)

# MAL genre ids accepted by the `genres` search filter.
GENRE_IDS = {
    'Action': 1, 'Adventure': 2, 'Comedy': 4, 'Drama': 8,
    'Fantasy': 10, 'Horror': 14, 'Mystery': 7, 'Romance': 22,
    'Sci-Fi': 24, 'Slice of Life': 36, 'Sports': 30, 'Supernatural': 37,
    'Thriller': 41, 'Psychological': 40, 'Shounen': 27, 'Seinen': 42,
}


def genre_id(genre: str) -> Optional[int]:
    return GENRE_IDS.get(genre)


def endpoint_for(media_type: str) -> str:
    # Jikan only knows anime and manga; manhwa lives under manga.
    return "anime" if media_type == "anime" else "manga"


def _data(payload: Any) -> Any:
    if not isinstance(payload, dict) or "data" not in payload:
        raise CatalogResponseError("Jikan response has no 'data' field")
    return payload["data"]


def _image(item: Dict[str, Any], prefer: str = "jpg") -> Optional[str]:
    images = item.get("images") or {}
    order = ("webp", "jpg") if prefer == "webp" else ("jpg", "webp")
    for fmt in order:
        url = (images.get(fmt) or {}).get("image_url")
        if url:
            return url
    return None


def _names(entries: Optional[List[Dict[str, Any]]]) -> List[str]:
    return [e["name"] for e in entries or [] if isinstance(e, dict) and e.get("name")]


def normalize_item(item: Dict[str, Any], media_type: str) -> Optional[Candidate]:
    """Map one Jikan anime/manga record to a Candidate; None when unusable."""
    title = item.get("title")
    if not title:
        return None
    mal_id = item.get("mal_id")
    return Candidate(
        external_id=str(mal_id) if mal_id is not None else None,
        title=title,
        type=media_type,
        thumbnail_url=_image(item),
        genres=_names(item.get("genres")),
        quality_score=item.get("score"),
        episodes=item.get("episodes"),
        chapters=item.get("chapters"),
        status=item.get("status"),
        synopsis=item.get("synopsis"),
    )


def normalize_items(payload: Any, media_type: str) -> List[Candidate]:
    items = _data(payload) or []
    candidates = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            candidate = normalize_item(item, media_type)
        except ValidationError as e:
            logger.debug(f"Skipping malformed Jikan record {item.get('mal_id')}: {e}")
            continue
        if candidate:
            candidates.append(candidate)
    return candidates


def _year(item: Dict[str, Any]) -> Optional[int]:
    if item.get("year"):
        return item["year"]
    published_from = ((item.get("published") or item.get("aired") or {}).get("from"))
    if published_from:
        try:
            return datetime.fromisoformat(published_from.replace("Z", "+00:00")).year
        except ValueError:
            return None
    return None


def normalize_search_result(item: Dict[str, Any], media_type: str) -> Optional[TitleSearchResult]:
    title = item.get("title")
    mal_id = item.get("mal_id")
    if not title or mal_id is None:
        return None
    alternates = [item.get("title_english"), item.get("title_japanese")]
    alternates += [t.get("title") for t in item.get("titles") or [] if isinstance(t, dict)]
    seen = set()
    alternate_titles = []
    for alt in alternates:
        if alt and alt != title and alt not in seen:
            seen.add(alt)
            alternate_titles.append(alt)
    return TitleSearchResult(
        external_id=str(mal_id),
        title=title,
        alternate_titles=alternate_titles,
        thumbnail_url=_image(item, prefer="webp"),
        # Keep the requested type; a manhwa search is still a manhwa for the caller.
        type=media_type,
        synopsis=item.get("synopsis"),
        year=_year(item),
        quality_score=item.get("score"),
    )


class JikanClient:
    def __init__(self, catalog: CatalogClient, base_url: str = settings.jikan_base_url):
        self.catalog = catalog
        self.base_url = base_url.rstrip("/")

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, refresh: bool = False) -> Any:
        request = CatalogRequest("GET", f"{self.base_url}{path}", params=params)
        return await self.catalog.fetch(request, cache=self.catalog.candidate_cache, bypass_cache=refresh)

    async def fetch_by_genre(self, genre: str, media_type: str, limit: int = 10, refresh: bool = False) -> List[Candidate]:
        """Top-scored titles for one genre. Unknown genres return [] without a request."""
        gid = genre_id(genre)
        if gid is None:
            logger.debug(f"No Jikan genre id for {genre!r}")
            return []
        params = {"genres": gid, "order_by": "score", "sort": "desc", "limit": limit}
        if media_type == "manhwa":
            params["type"] = "manhwa"
        payload = await self._get(f"/{endpoint_for(media_type)}", params, refresh=refresh)
        return normalize_items(payload, media_type)

    async def fetch_top(self, media_type: str, page: int = 1, limit: int = 10, refresh: bool = False) -> List[Candidate]:
        """Top-rated feed; manhwa uses Jikan's explicit `type=manhwa` filter."""
        params = {"page": page, "limit": limit}
        if media_type == "manhwa":
            params["type"] = "manhwa"
        payload = await self._get(f"/top/{endpoint_for(media_type)}", params, refresh=refresh)
        return normalize_items(payload, media_type)

    async def fetch_series_genres(self, external_id: str, media_type: str) -> List[str]:
        payload = await self._get(f"/{endpoint_for(media_type)}/{external_id}/full")
        data = _data(payload)
        if not isinstance(data, dict):
            raise CatalogResponseError(f"Unexpected Jikan detail payload for {media_type} {external_id}")
        return _names(data.get("genres"))

    async def search_titles(self, query: str, media_type: str, limit: int = 5) -> List[TitleSearchResult]:
        """Title autocomplete. `q` goes upstream as typed; case variants share one cache entry."""
        params = {"q": query, "limit": limit, "sfw": "true", "order_by": "popularity", "sort": "asc"}
        if media_type == "manhwa":
            params["type"] = "manhwa"
        url = f"{self.base_url}/{endpoint_for(media_type)}"
        request = CatalogRequest("GET", url, params=params)
        key = CatalogRequest("GET", url, params={**params, "q": query.lower()}).cache_key()
        payload = await self.catalog.fetch(request, cache=self.catalog.search_cache, key=key)
        results = []
        seen_ids = set()
        for item in _data(payload) or []:
            if not isinstance(item, dict):
                continue
            try:
                result = normalize_search_result(item, media_type)
            except ValidationError as e:
                logger.debug(f"Skipping malformed Jikan search hit {item.get('mal_id')}: {e}")
                continue
            if result and result.external_id not in seen_ids:
                seen_ids.add(result.external_id)
                results.append(result)
        return results
