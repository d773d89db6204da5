"""
AniList GraphQL client for MangaVerse.

AniList is the richer of the two catalogs: it exposes trending feeds, country
of origin (so manhwa is MANGA + countryOfOrigin KR) and reliable episode /
chapter / status data for non-Japanese titles that Jikan often lacks.
Records are matched back to library entries through `idMal`.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from mangaverse.core.config import settings
from mangaverse.schemas import Candidate
from mangaverse.services.catalog_client import CatalogClient
from mangaverse.services.catalog_errors import CatalogResponseError
from mangaverse.services.rate_limit import CatalogRequest

logger = logging.getLogger(__name__)

METADATA_BATCH_SIZE = 50

STATUS_MAP = {
    "FINISHED": "Finished",
    "RELEASING": "Publishing",
    "NOT_YET_RELEASED": "Not Yet Released",
    "CANCELLED": "Cancelled",
    "HIATUS": "Hiatus",
}

TRENDING_QUERY = """
query ($page: Int, $perPage: Int, $type: MediaType, $country: CountryCode) {
  Page(page: $page, perPage: $perPage) {
    media(type: $type, countryOfOrigin: $country, sort: TRENDING_DESC, isAdult: false) {
      id
      idMal
      title { romaji english }
      coverImage { large medium }
      genres
      averageScore
      episodes
      chapters
      status
    }
  }
}
"""

METADATA_QUERY = """
query ($ids: [Int], $type: MediaType, $perPage: Int) {
  Page(page: 1, perPage: $perPage) {
    media(idMal_in: $ids, type: $type) {
      idMal
      episodes
      chapters
      status
    }
  }
}
"""


def normalize_status(status: Optional[str]) -> Optional[str]:
    """Map AniList status enums onto the display vocabulary; unknown values pass through."""
    if status is None:
        return None
    return STATUS_MAP.get(status, status)


def media_filter(media_type: str) -> Dict[str, Any]:
    if media_type == "anime":
        return {"type": "ANIME"}
    if media_type == "manhwa":
        return {"type": "MANGA", "country": "KR"}
    return {"type": "MANGA", "country": "JP"}


def _media(payload: Any) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        raise CatalogResponseError("AniList response is not an object")
    if payload.get("errors"):
        messages = "; ".join(str(e.get("message")) for e in payload["errors"] if isinstance(e, dict))
        raise CatalogResponseError(f"AniList query failed: {messages}")
    page = (payload.get("data") or {}).get("Page")
    if not isinstance(page, dict):
        raise CatalogResponseError("AniList response has no Page")
    return [m for m in page.get("media") or [] if isinstance(m, dict)]


def normalize_media(media: Dict[str, Any], media_type: str) -> Optional[Candidate]:
    title = media.get("title") or {}
    name = title.get("english") or title.get("romaji")
    if not name:
        return None
    id_mal = media.get("idMal")
    cover = media.get("coverImage") or {}
    score = media.get("averageScore")
    return Candidate(
        external_id=str(id_mal) if id_mal else None,
        title=name,
        type=media_type,
        thumbnail_url=cover.get("large") or cover.get("medium"),
        genres=[g for g in media.get("genres") or [] if isinstance(g, str)],
        # AniList scores are 0-100
        quality_score=score / 10 if score is not None else None,
        episodes=media.get("episodes"),
        chapters=media.get("chapters"),
        status=normalize_status(media.get("status")),
    )


class AniListClient:
    def __init__(self, catalog: CatalogClient, url: str = settings.anilist_url):
        self.catalog = catalog
        self.url = url

    async def _query(self, query: str, variables: Dict[str, Any], refresh: bool = False) -> Any:
        request = CatalogRequest("POST", self.url, body={"query": query, "variables": variables})
        return await self.catalog.fetch(request, bypass_cache=refresh)

    async def fetch_trending(self, media_type: str, page: int = 1, limit: int = 10, refresh: bool = False) -> List[Candidate]:
        variables = {"page": page, "perPage": limit, **media_filter(media_type)}
        payload = await self._query(TRENDING_QUERY, variables, refresh=refresh)
        candidates = []
        for media in _media(payload):
            try:
                candidate = normalize_media(media, media_type)
            except ValidationError as e:
                logger.debug(f"Skipping malformed AniList media {media.get('id')}: {e}")
                continue
            if candidate:
                candidates.append(candidate)
        return candidates

    async def fetch_metadata(self, mal_ids: List[int], media_type: str) -> Dict[str, Dict[str, Any]]:
        """Episode/chapter/status for MAL ids, keyed by the id as a string.

        Queried in batches; a failing batch raises so the caller can decide
        whether partial data is enough.
        """
        result: Dict[str, Dict[str, Any]] = {}
        anilist_type = "ANIME" if media_type == "anime" else "MANGA"
        for start in range(0, len(mal_ids), METADATA_BATCH_SIZE):
            batch = mal_ids[start:start + METADATA_BATCH_SIZE]
            variables = {"ids": batch, "type": anilist_type, "perPage": METADATA_BATCH_SIZE}
            payload = await self._query(METADATA_QUERY, variables)
            for media in _media(payload):
                id_mal = media.get("idMal")
                if not id_mal:
                    continue
                result[str(id_mal)] = {
                    "episodes": media.get("episodes"),
                    "chapters": media.get("chapters"),
                    "status": normalize_status(media.get("status")),
                }
        return result
