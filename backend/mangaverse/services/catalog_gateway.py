"""
catalog_gateway.py

Domain-level entry point to the external catalogs. Wraps the Jikan and AniList
clients and turns every upstream failure into an empty result for that one
sub-fetch, so a single bad genre or metadata lookup never sinks a whole
recommendation request. Callers that need to know whether *anything* worked
pass a FetchReport.
"""
import logging
from typing import Any, Awaitable, Dict, Iterable, List, Optional

from mangaverse.schemas import Candidate, TitleSearchResult
from mangaverse.services.anilist_client import AniListClient
from mangaverse.services.catalog_client import CatalogClient
from mangaverse.services.catalog_errors import CatalogAPIError
from mangaverse.services.jikan_client import JikanClient, genre_id

logger = logging.getLogger(__name__)


class FetchReport:
    """Per-request tally of gateway sub-fetches.

    Candidate fetches (genre lists, trending/top feeds) are tallied separately
    from annotation lookups (series genres, metadata): a request whose every
    candidate fetch failed has nothing to rank, however many lookups worked.
    """

    def __init__(self):
        self.attempted = 0
        self.succeeded = 0
        self.candidate_attempted = 0
        self.candidate_succeeded = 0
        self.failures: List[str] = []

    def record_success(self, candidates: bool = False) -> None:
        self.attempted += 1
        self.succeeded += 1
        if candidates:
            self.candidate_attempted += 1
            self.candidate_succeeded += 1

    def record_failure(self, label: str, error: BaseException, candidates: bool = False) -> None:
        self.attempted += 1
        self.failures.append(f"{label}: {error}")
        if candidates:
            self.candidate_attempted += 1

    @property
    def all_failed(self) -> bool:
        """True when candidate fetches were attempted and none of them succeeded."""
        return self.candidate_attempted > 0 and self.candidate_succeeded == 0


class CatalogGateway:
    def __init__(self, catalog: CatalogClient, jikan: Optional[JikanClient] = None, anilist: Optional[AniListClient] = None):
        self.catalog = catalog
        self.jikan = jikan or JikanClient(catalog)
        self.anilist = anilist or AniListClient(catalog)

    async def _guard(
        self, label: str, call: Awaitable[Any], default: Any,
        report: Optional[FetchReport], candidates: bool = False,
    ) -> Any:
        try:
            result = await call
        except CatalogAPIError as e:
            logger.warning(f"Catalog fetch failed for {label}: {e}")
            if report is not None:
                report.record_failure(label, e, candidates=candidates)
            return default
        except Exception as e:
            logger.warning(f"Unexpected error during catalog fetch for {label}: {e}", exc_info=True)
            if report is not None:
                report.record_failure(label, e, candidates=candidates)
            return default
        if report is not None:
            report.record_success(candidates=candidates)
        return result

    async def fetch_by_genre(
        self, genre: str, media_type: str, limit: int = 10,
        report: Optional[FetchReport] = None, refresh: bool = False,
    ) -> List[Candidate]:
        if genre_id(genre) is None:
            return []
        return await self._guard(
            f"genre {genre}/{media_type}",
            self.jikan.fetch_by_genre(genre, media_type, limit, refresh=refresh),
            [], report, candidates=True,
        )

    async def fetch_trending(
        self, media_type: str, page: int = 1, limit: int = 10,
        report: Optional[FetchReport] = None, refresh: bool = False,
    ) -> List[Candidate]:
        """Trending feed from AniList, falling back to Jikan's top list if AniList fails."""
        try:
            candidates = await self.anilist.fetch_trending(media_type, page, limit, refresh=refresh)
        except Exception as e:
            logger.warning(f"AniList trending failed for {media_type}, falling back to Jikan top list: {e}")
        else:
            if report is not None:
                report.record_success(candidates=True)
            return candidates
        return await self._guard(
            f"top {media_type} page {page}",
            self.jikan.fetch_top(media_type, page, limit, refresh=refresh),
            [], report, candidates=True,
        )

    async def enrich_metadata(
        self, external_ids: Iterable[Optional[str]], media_type: str,
        report: Optional[FetchReport] = None,
    ) -> Dict[str, Dict[str, Any]]:
        mal_ids: List[int] = []
        for external_id in external_ids:
            if external_id and str(external_id).isdigit() and int(external_id) not in mal_ids:
                mal_ids.append(int(external_id))
        if not mal_ids:
            return {}
        return await self._guard(
            f"metadata {media_type} x{len(mal_ids)}",
            self.anilist.fetch_metadata(mal_ids, media_type),
            {}, report,
        )

    async def fetch_series_genres(
        self, external_id: str, media_type: str,
        report: Optional[FetchReport] = None,
    ) -> List[str]:
        return await self._guard(
            f"genres {media_type} {external_id}",
            self.jikan.fetch_series_genres(external_id, media_type),
            [], report,
        )

    async def search_titles(self, query: str, media_type: str, limit: int = 5) -> List[TitleSearchResult]:
        """Title autocomplete. Unlike the recommendation fetches, errors propagate."""
        query = (query or "").strip()
        if not query:
            return []
        return await self.jikan.search_titles(query, media_type, limit)
