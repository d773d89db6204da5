"""
schemas.py

Pydantic schemas for library records, catalog candidates, preference profiles
and recommendation payloads.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, List, Literal
import datetime

MediaType = Literal["anime", "manga", "manhwa"]
LibraryStatus = Literal["watching", "reading", "completed", "on-hold", "dropped", "plan-to-read"]

# Fixed order used whenever results for several media types are concatenated.
MEDIA_TYPES = ("anime", "manga", "manhwa")


class LibraryEntry(BaseModel):
    series_id: str
    title: str
    type: MediaType
    external_id: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    status: LibraryStatus = "plan-to-read"
    updated_at: Optional[datetime.datetime] = None
    thumbnail_url: Optional[str] = None
    last_progress: Optional[int] = None


class Candidate(BaseModel):
    external_id: Optional[str] = None
    title: str
    type: MediaType
    thumbnail_url: Optional[str] = None
    genres: List[str] = []
    quality_score: Optional[float] = None  # 0-10
    episodes: Optional[int] = None
    chapters: Optional[int] = None
    status: Optional[str] = None
    synopsis: Optional[str] = None


class Recommendation(Candidate):
    score: float
    reason: str
    recommendation_type: str = "taste-based"


class GenreWeight(BaseModel):
    model_config = ConfigDict(frozen=True)
    weight: float
    count: int


class TypePreference(BaseModel):
    model_config = ConfigDict(frozen=True)
    avg: float
    total_weight: float
    count: int


class QualifyingSeries(BaseModel):
    model_config = ConfigDict(frozen=True)
    series_id: str
    title: str
    type: MediaType
    rating: float
    weight: float
    external_id: Optional[str] = None


class PreferenceProfile(BaseModel):
    """Per-request taste summary. Built once, never mutated."""
    model_config = ConfigDict(frozen=True)
    genre_weights: Dict[str, GenreWeight] = {}
    preferred_types: Dict[str, TypePreference] = {}
    qualifying_series: List[QualifyingSeries] = []
    top_genres: List[str] = []
    completed_count: int = 0
    dropped_count: int = 0


class ProfileSummary(BaseModel):
    top_genres: List[str]
    preferred_types: List[str]
    qualifying_series_count: int


class RecommendationResponse(BaseModel):
    recommendations: List[Recommendation]
    count: int
    tier: str
    page: Optional[int] = None
    message: Optional[str] = None
    profile: Optional[ProfileSummary] = None


class ContinueItem(BaseModel):
    series_id: str
    title: str
    type: MediaType
    thumbnail_url: Optional[str] = None
    last_progress: Optional[int] = None
    updated_at: Optional[datetime.datetime] = None
    status: LibraryStatus
    reason: str = "Continue where you left off"
    recommendation_type: str = "continue"


class TitleSearchResult(BaseModel):
    external_id: str
    title: str
    alternate_titles: List[str] = []
    thumbnail_url: Optional[str] = None
    type: MediaType
    synopsis: Optional[str] = None
    year: Optional[int] = None
    quality_score: Optional[float] = None


# Payloads
class RecommendationRequest(BaseModel):
    library: List[LibraryEntry] = []
    type: Optional[MediaType] = None
    page: Optional[int] = Field(None, ge=1)
    refresh: bool = False


class ContinueRequest(BaseModel):
    library: List[LibraryEntry] = []


class ContinueResponse(BaseModel):
    recommendations: List[ContinueItem]
    count: int


class TitleSearchResponse(BaseModel):
    results: List[TitleSearchResult]
    error: Optional[str] = None
