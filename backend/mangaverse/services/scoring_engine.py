"""
scoring_engine.py

Scores catalog candidates against a PreferenceProfile and produces the final
ranked, deduplicated recommendation list.

Scoring weights (sum to 1.0 when every signal is present):
- 60% genre match against the profile's summed genre weights
- 25% affinity for the candidate's media type
- 15% upstream quality score (0-10 scale)
"""
import logging
from typing import Iterable, List, Optional, Sequence

from mangaverse.core.config import settings
from mangaverse.schemas import Candidate, LibraryEntry, PreferenceProfile, Recommendation
from mangaverse.services.explain import explain_recommendation
from mangaverse.utils.franchise import deduplicate_by_franchise

logger = logging.getLogger(__name__)


class CandidateScorer:
    def __init__(
        self,
        genre_weight: float = settings.genre_weight,
        type_weight: float = settings.type_weight,
        quality_weight: float = settings.quality_weight,
        max_weight_per_genre: float = settings.max_weight_per_genre,
    ):
        self.genre_weight = genre_weight
        self.type_weight = type_weight
        self.quality_weight = quality_weight
        self.max_weight_per_genre = max_weight_per_genre

    def genre_score(self, candidate: Candidate, profile: PreferenceProfile) -> float:
        genres = candidate.genres or []
        if not genres or not profile.genre_weights:
            return 0.0
        matched = sum(profile.genre_weights[g].weight for g in genres if g in profile.genre_weights)
        ceiling = self.max_weight_per_genre * len(genres)
        return min(1.0, matched / ceiling)

    def type_score(self, candidate: Candidate, profile: PreferenceProfile) -> float:
        preference = profile.preferred_types.get(candidate.type)
        if preference is None:
            return 0.0
        return max(0.0, min(1.0, preference.avg))

    def quality_score(self, candidate: Candidate) -> float:
        if not candidate.quality_score:
            return 0.0
        return max(0.0, min(1.0, candidate.quality_score / 10))

    def score(self, candidate: Candidate, profile: PreferenceProfile) -> float:
        return (
            self.genre_score(candidate, profile) * self.genre_weight
            + self.type_score(candidate, profile) * self.type_weight
            + self.quality_score(candidate) * self.quality_weight
        )


def filter_existing_series(candidates: Iterable[Candidate], library: Sequence[LibraryEntry]) -> List[Candidate]:
    """Drop candidates already in the library, by externalId first, then case-insensitive title."""
    existing_ids = {e.external_id for e in library if e.external_id}
    existing_titles = {e.title.lower() for e in library if e.title}
    kept = []
    for candidate in candidates:
        if candidate.external_id and candidate.external_id in existing_ids:
            continue
        if candidate.title and candidate.title.lower() in existing_titles:
            continue
        kept.append(candidate)
    return kept


def dedupe_pool(candidate_lists: Iterable[Sequence[Candidate]]) -> List[Candidate]:
    """Flatten per-fetch results in the given order, keeping the first copy of each externalId."""
    seen = set()
    pool = []
    for candidates in candidate_lists:
        for candidate in candidates:
            if candidate.external_id:
                if candidate.external_id in seen:
                    continue
                seen.add(candidate.external_id)
            pool.append(candidate)
    return pool


class CandidateRanker:
    """Library filter -> score -> noise floor -> sort -> franchise dedup -> top N."""

    def __init__(
        self,
        scorer: Optional[CandidateScorer] = None,
        noise_floor: float = settings.noise_floor,
        max_results: int = settings.max_results,
        max_per_franchise: int = settings.max_per_franchise,
    ):
        self.scorer = scorer or CandidateScorer()
        self.noise_floor = noise_floor
        self.max_results = max_results
        self.max_per_franchise = max_per_franchise

    def rank(
        self,
        candidates: Sequence[Candidate],
        profile: PreferenceProfile,
        library: Sequence[LibraryEntry],
        limit: Optional[int] = None,
    ) -> List[Recommendation]:
        unseen = filter_existing_series(candidates, library)

        scored = []
        for candidate in unseen:
            # Rounded before the floor check so the reported score always clears it.
            score = round(self.scorer.score(candidate, profile), 2)
            if score <= self.noise_floor:
                continue
            scored.append(Recommendation(
                **candidate.model_dump(),
                score=score,
                reason=explain_recommendation(candidate, profile),
                recommendation_type="taste-based",
            ))

        scored.sort(key=lambda r: r.score, reverse=True)
        diverse = deduplicate_by_franchise(scored, self.max_per_franchise)
        limit = self.max_results if limit is None else limit
        logger.debug(
            f"Ranked {len(candidates)} candidates: {len(unseen)} unseen, "
            f"{len(scored)} above floor, {len(diverse)} after franchise dedup"
        )
        return diverse[:limit]
