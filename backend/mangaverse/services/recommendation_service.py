"""
recommendation_service.py

Runs one "for you" request end to end:

    library -> tier selection -> (profile builder) -> catalog fetches
            -> scorer & ranker -> metadata enrichment -> response

Independent catalog fetches are issued together with asyncio.gather and the
results are merged in a fixed order, so output does not depend on network
timing. Individual fetch failures only shrink the candidate pool; the request
fails only when every catalog call failed and nothing could be recommended.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from mangaverse.core.config import settings
from mangaverse.schemas import (
    MEDIA_TYPES,
    Candidate,
    ContinueItem,
    LibraryEntry,
    PreferenceProfile,
    ProfileSummary,
    Recommendation,
    RecommendationResponse,
)
from mangaverse.services.catalog_errors import RecommendationError
from mangaverse.services.catalog_gateway import CatalogGateway, FetchReport
from mangaverse.services.explain import trending_reason
from mangaverse.services.scoring_engine import CandidateRanker, dedupe_pool, filter_existing_series
from mangaverse.services.tiering import Tier, select_tier
from mangaverse.services.user_profile import UserProfileService, qualifying_entries, ranked_types
from mangaverse.utils.franchise import deduplicate_by_franchise, extract_franchise
from mangaverse.utils.timezone import recency_key

logger = logging.getLogger(__name__)

NO_HISTORY_MESSAGE = "Rate more series to get personalized recommendations"
NO_RESULTS_MESSAGE = "No recommendations found yet. Try rating a few more series."
ACTIVE_STATUSES = ("watching", "reading")


def continue_recommendations(library: Sequence[LibraryEntry], limit: int = settings.continue_limit) -> List[ContinueItem]:
    """Active series, most recently updated first."""
    active = [e for e in library if e.status in ACTIVE_STATUSES]
    active.sort(key=lambda e: recency_key(e.updated_at), reverse=True)
    return [
        ContinueItem(
            series_id=e.series_id,
            title=e.title,
            type=e.type,
            thumbnail_url=e.thumbnail_url,
            last_progress=e.last_progress,
            updated_at=e.updated_at,
            status=e.status,
        )
        for e in active[:limit]
    ]


def summarize_profile(profile: PreferenceProfile) -> ProfileSummary:
    return ProfileSummary(
        top_genres=list(profile.top_genres),
        preferred_types=list(profile.preferred_types.keys()),
        qualifying_series_count=len(profile.qualifying_series),
    )


def as_trending(candidates: Sequence[Candidate], reason: str) -> List[Recommendation]:
    """Wrap unscored catalog candidates; their score is the upstream quality on a 0-1 scale."""
    return [
        Recommendation(
            **c.model_dump(),
            score=round((c.quality_score or 0) / 10, 2),
            reason=reason,
            recommendation_type="trending",
        )
        for c in candidates
    ]


class RecommendationService:
    def __init__(
        self,
        gateway: CatalogGateway,
        profile_service: Optional[UserProfileService] = None,
        ranker: Optional[CandidateRanker] = None,
    ):
        self.gateway = gateway
        self.profile_service = profile_service or UserProfileService(gateway)
        self.ranker = ranker or CandidateRanker()

    async def recommend(
        self,
        library: Sequence[LibraryEntry],
        media_type: Optional[str] = None,
        page: Optional[int] = None,
        refresh: bool = False,
    ) -> RecommendationResponse:
        report = FetchReport()
        qualifying = qualifying_entries(library)
        tier = select_tier(len(qualifying), media_type, page)
        logger.info(f"Recommending for library of {len(library)} ({len(qualifying)} qualifying): tier={tier.value}")

        profile: Optional[PreferenceProfile] = None
        if tier is Tier.BROWSE:
            page = page or 1
            recommendations = await self._browse(library, media_type, page, report, refresh)
        elif tier is Tier.NO_HISTORY:
            recommendations = await self._no_history(library, report, refresh)
        elif tier is Tier.EARLY_STAGE:
            recommendations, profile = await self._early_stage(library, report, refresh)
        else:
            recommendations, profile = await self._established(library, report, refresh)

        if not recommendations and report.all_failed:
            logger.error(f"All {report.candidate_attempted} candidate fetches failed: {report.failures}")
            raise RecommendationError(
                f"Failed to generate recommendations: all {report.candidate_attempted} candidate requests failed"
            )

        recommendations = await self._enrich(recommendations)

        message = None
        if tier is Tier.NO_HISTORY:
            message = NO_HISTORY_MESSAGE
        elif not recommendations:
            message = NO_RESULTS_MESSAGE

        return RecommendationResponse(
            recommendations=recommendations,
            count=len(recommendations),
            tier=tier.value,
            page=page if tier is Tier.BROWSE else None,
            message=message,
            profile=summarize_profile(profile) if profile else None,
        )

    async def _no_history(self, library, report: FetchReport, refresh: bool) -> List[Recommendation]:
        lists = await asyncio.gather(*[
            self.gateway.fetch_trending(t, 1, settings.trending_per_type, report=report, refresh=refresh)
            for t in MEDIA_TYPES
        ])
        pool = filter_existing_series(dedupe_pool(lists), library)
        diverse = deduplicate_by_franchise(as_trending(pool, trending_reason()), settings.max_per_franchise)
        return diverse[:settings.max_results]

    async def _early_stage(self, library, report: FetchReport, refresh: bool) -> Tuple[List[Recommendation], PreferenceProfile]:
        profile = await self.profile_service.get_profile(library, report=report)
        types = ranked_types(profile)
        top_type = types[0] if types else profile.qualifying_series[0].type

        fetches = [self.gateway.fetch_trending(top_type, 1, settings.early_stage_trending_limit, report=report, refresh=refresh)]
        if profile.top_genres:
            fetches.append(self.gateway.fetch_by_genre(
                profile.top_genres[0], top_type, settings.early_stage_genre_limit, report=report, refresh=refresh
            ))
        results = await asyncio.gather(*fetches)
        trending = results[0]
        personalized = results[1] if len(results) > 1 else []

        ranked = self.ranker.rank(personalized, profile, library)

        taken_ids = {r.external_id for r in ranked if r.external_id}
        taken_franchises = {extract_franchise(r.title) for r in ranked}
        fill = []
        for candidate in filter_existing_series(trending, library):
            if candidate.external_id and candidate.external_id in taken_ids:
                continue
            if extract_franchise(candidate.title) in taken_franchises:
                continue
            fill.append(candidate)
        filler = deduplicate_by_franchise(as_trending(fill, trending_reason(top_type)), settings.max_per_franchise)

        return (ranked + filler)[:settings.max_results], profile

    async def _established(self, library, report: FetchReport, refresh: bool) -> Tuple[List[Recommendation], PreferenceProfile]:
        profile = await self.profile_service.get_profile(library, report=report)
        genres = profile.top_genres[:settings.top_genre_fanout]
        types = ranked_types(profile)[:settings.top_type_fanout]

        fetches = [
            self.gateway.fetch_by_genre(genre, media_type, settings.genre_candidate_limit, report=report, refresh=refresh)
            for genre in genres
            for media_type in types
        ]
        if not fetches and types:
            logger.info(f"No genre data for profile, falling back to {settings.fallback_genre} {types[0]}")
            fetches.append(self.gateway.fetch_by_genre(
                settings.fallback_genre, types[0], settings.fallback_candidate_limit, report=report, refresh=refresh
            ))

        lists = await asyncio.gather(*fetches)
        pool = dedupe_pool(lists)
        return self.ranker.rank(pool, profile, library), profile

    async def _browse(self, library, media_type: Optional[str], page: int, report: FetchReport, refresh: bool) -> List[Recommendation]:
        types = [media_type] if media_type else list(MEDIA_TYPES)
        per_type = max(1, settings.browse_page_size // len(types))
        lists = await asyncio.gather(*[
            self.gateway.fetch_trending(t, page, per_type, report=report, refresh=refresh) for t in types
        ])
        recommendations = []
        for t, candidates in zip(types, lists):
            recommendations.extend(as_trending(filter_existing_series(candidates, library), trending_reason(t)))
        return deduplicate_by_franchise(recommendations, settings.max_per_franchise)

    async def _enrich(self, recommendations: List[Recommendation]) -> List[Recommendation]:
        """Patch missing episode/chapter/status fields from the secondary catalog, one batch per type."""
        missing: Dict[str, List[str]] = {}
        for r in recommendations:
            if r.external_id and (r.status is None or (r.episodes is None and r.chapters is None)):
                missing.setdefault(r.type, []).append(r.external_id)
        if not missing:
            return recommendations

        media_types = [t for t in MEDIA_TYPES if t in missing]
        results = await asyncio.gather(*[self.gateway.enrich_metadata(missing[t], t) for t in media_types])
        metadata = dict(zip(media_types, results))

        enriched = []
        for r in recommendations:
            patch = metadata.get(r.type, {}).get(r.external_id) if r.external_id else None
            if patch:
                update = {k: v for k, v in patch.items() if v is not None and getattr(r, k) is None}
                if update:
                    r = r.model_copy(update=update)
            enriched.append(r)
        return enriched
