"""
explain.py

Deterministic, template-based reasons for recommendations.
The first rule that matches wins, preferring concrete references to the
user's own favourites over genre talk over the generic fallback.
"""

from typing import List, Optional

from mangaverse.schemas import Candidate, PreferenceProfile, QualifyingSeries
from mangaverse.utils.franchise import short_title

FALLBACK_REASON = "For you"
TRENDING_REASON = "Trending now"
FAVOURITE_MIN_RATING = 4.0


def favourite_series(profile: PreferenceProfile, limit: int = 2) -> List[QualifyingSeries]:
    """The first qualifying series rated 4+, in library order."""
    return [s for s in profile.qualifying_series if s.rating >= FAVOURITE_MIN_RATING][:limit]


def matching_genres(candidate: Candidate, profile: PreferenceProfile) -> List[str]:
    return [g for g in candidate.genres or [] if g in profile.top_genres]


def explain_recommendation(candidate: Candidate, profile: PreferenceProfile) -> str:
    favourites = favourite_series(profile)
    if len(favourites) >= 2:
        return f"You liked {short_title(favourites[0].title)} & {short_title(favourites[1].title)}"

    genres = matching_genres(candidate, profile)
    if len(genres) >= 2:
        return f"{genres[0]} + {genres[1]}"
    if len(genres) == 1 and candidate.type:
        return f"{genres[0]} {candidate.type}"

    if len(favourites) == 1:
        return f"Similar to {short_title(favourites[0].title)}"

    return FALLBACK_REASON


def trending_reason(media_type: Optional[str] = None) -> str:
    if media_type:
        return f"Trending in {media_type}"
    return TRENDING_REASON
