"""
user_profile.py

Builds the per-request preference profile from a user's rated library.

Profile structure:
- genre_weights: {"Action": {weight: 2.4, count: 3}, ...}  summed rating weights
- preferred_types: {"manga": {avg: 0.8, total_weight: 1.6, count: 2}, ...}
- qualifying_series: library entries whose rating weight is > 0
- top_genres: up to 6 genre names by total weight (first seen wins ties)

Genre annotations come from the catalog and are only fetched for the first
few qualifying series; series without annotations still count toward type
preferences.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from mangaverse.core.config import settings
from mangaverse.schemas import (
    GenreWeight,
    LibraryEntry,
    PreferenceProfile,
    QualifyingSeries,
    TypePreference,
)
from mangaverse.services.catalog_gateway import CatalogGateway, FetchReport

logger = logging.getLogger(__name__)

# (min rating, weight), checked top-down
RATING_WEIGHT_STEPS = ((5.0, 1.0), (4.5, 0.8), (4.0, 0.6), (3.5, 0.4))


def rating_to_weight(rating: Optional[float]) -> float:
    if rating is None:
        return 0.0
    try:
        r = float(rating)
    except (TypeError, ValueError):
        return 0.0
    for threshold, weight in RATING_WEIGHT_STEPS:
        if r >= threshold:
            return weight
    return 0.0


def is_qualifying(entry: LibraryEntry) -> bool:
    return rating_to_weight(entry.rating) > 0


def qualifying_entries(library: Sequence[LibraryEntry]) -> List[LibraryEntry]:
    return [entry for entry in library if is_qualifying(entry)]


def build_preference_profile(
    library: Sequence[LibraryEntry],
    genre_data: Optional[Dict[str, List[str]]] = None,
    top_genres_size: int = settings.top_genres_size,
) -> PreferenceProfile:
    genre_data = genre_data or {}
    genre_totals: Dict[str, List[float]] = {}  # genre -> [weight, count]
    type_totals: Dict[str, List[float]] = {"anime": [0.0, 0], "manga": [0.0, 0], "manhwa": [0.0, 0]}
    qualifying: List[QualifyingSeries] = []
    completed = dropped = 0

    for entry in library:
        weight = rating_to_weight(entry.rating)

        if entry.status == "completed":
            completed += 1
        elif entry.status == "dropped":
            dropped += 1

        if weight <= 0:
            continue

        qualifying.append(QualifyingSeries(
            series_id=entry.series_id,
            title=entry.title,
            type=entry.type,
            rating=float(entry.rating),
            weight=weight,
            external_id=entry.external_id,
        ))

        totals = type_totals.setdefault(entry.type, [0.0, 0])
        totals[0] += weight
        totals[1] += 1

        for genre in genre_data.get(entry.series_id) or []:
            g = genre_totals.setdefault(genre, [0.0, 0])
            g[0] += weight
            g[1] += 1

    preferred_types = {
        media_type: TypePreference(avg=total / count, total_weight=total, count=count)
        for media_type, (total, count) in type_totals.items()
        if count > 0
    }
    genre_weights = {
        genre: GenreWeight(weight=total, count=count)
        for genre, (total, count) in genre_totals.items()
    }
    # sorted() is stable, so equal weights keep first-seen order
    top_genres = [
        genre for genre, _ in sorted(genre_weights.items(), key=lambda kv: kv[1].weight, reverse=True)
    ][:top_genres_size]

    return PreferenceProfile(
        genre_weights=genre_weights,
        preferred_types=preferred_types,
        qualifying_series=qualifying,
        top_genres=top_genres,
        completed_count=completed,
        dropped_count=dropped,
    )


def ranked_types(profile: PreferenceProfile, min_affinity: float = settings.min_type_affinity) -> List[str]:
    """Preferred media types by total weight, dropping weak affinities."""
    eligible = [(t, p) for t, p in profile.preferred_types.items() if p.avg >= min_affinity]
    return [t for t, _ in sorted(eligible, key=lambda tp: tp[1].total_weight, reverse=True)]


class UserProfileService:
    """Fetches genre annotations for a library and builds its PreferenceProfile."""

    def __init__(self, gateway: CatalogGateway, genre_fetch_limit: int = settings.genre_fetch_limit):
        self.gateway = gateway
        self.genre_fetch_limit = genre_fetch_limit

    async def fetch_genre_data(self, library: Sequence[LibraryEntry], report: Optional[FetchReport] = None) -> Dict[str, List[str]]:
        """Genres for the first N qualifying series with an externalId, fetched concurrently."""
        targets = [e for e in qualifying_entries(library) if e.external_id][:self.genre_fetch_limit]
        if not targets:
            return {}
        results = await asyncio.gather(*[
            self.gateway.fetch_series_genres(e.external_id, e.type, report=report) for e in targets
        ])
        genre_data = {entry.series_id: genres for entry, genres in zip(targets, results)}
        logger.debug(f"Fetched genres for {sum(1 for g in results if g)}/{len(targets)} series")
        return genre_data

    async def get_profile(self, library: Sequence[LibraryEntry], report: Optional[FetchReport] = None) -> PreferenceProfile:
        genre_data = await self.fetch_genre_data(library, report=report)
        profile = build_preference_profile(library, genre_data)
        logger.info(
            f"Built profile: {len(profile.qualifying_series)} qualifying series, "
            f"top genres {profile.top_genres}"
        )
        return profile
