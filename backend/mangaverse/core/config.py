import os
from pydantic_settings import BaseSettings



class Settings(BaseSettings):
    # Upstream catalogs
    jikan_base_url: str = os.getenv("JIKAN_BASE_URL", "https://api.jikan.moe/v4")
    anilist_url: str = os.getenv("ANILIST_URL", "https://graphql.anilist.co")
    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

    # Request queue (Jikan documents ~3 requests/second)
    request_interval_seconds: float = float(os.getenv("REQUEST_INTERVAL_SECONDS", "0.35"))
    throttle_cooldown_seconds: float = float(os.getenv("THROTTLE_COOLDOWN_SECONDS", "2.0"))
    max_throttle_retries: int = int(os.getenv("MAX_THROTTLE_RETRIES", "5"))

    # Response caches
    candidate_cache_ttl: int = int(os.getenv("CANDIDATE_CACHE_TTL", "3600"))  # 1h
    candidate_cache_size: int = int(os.getenv("CANDIDATE_CACHE_SIZE", "100"))
    search_cache_ttl: int = int(os.getenv("SEARCH_CACHE_TTL", "86400"))  # 24h
    search_cache_size: int = int(os.getenv("SEARCH_CACHE_SIZE", "500"))

    # Tiering
    early_stage_max_qualifying: int = int(os.getenv("EARLY_STAGE_MAX_QUALIFYING", "3"))
    genre_fetch_limit: int = int(os.getenv("GENRE_FETCH_LIMIT", "8"))
    top_genre_fanout: int = int(os.getenv("TOP_GENRE_FANOUT", "3"))
    top_type_fanout: int = int(os.getenv("TOP_TYPE_FANOUT", "2"))
    min_type_affinity: float = float(os.getenv("MIN_TYPE_AFFINITY", "0.4"))
    genre_candidate_limit: int = int(os.getenv("GENRE_CANDIDATE_LIMIT", "8"))
    fallback_genre: str = os.getenv("FALLBACK_GENRE", "Action")
    fallback_candidate_limit: int = int(os.getenv("FALLBACK_CANDIDATE_LIMIT", "15"))
    trending_per_type: int = int(os.getenv("TRENDING_PER_TYPE", "5"))
    early_stage_trending_limit: int = int(os.getenv("EARLY_STAGE_TRENDING_LIMIT", "6"))
    early_stage_genre_limit: int = int(os.getenv("EARLY_STAGE_GENRE_LIMIT", "10"))
    browse_page_size: int = int(os.getenv("BROWSE_PAGE_SIZE", "10"))

    # Scoring
    genre_weight: float = float(os.getenv("SCORE_GENRE_WEIGHT", "0.6"))
    type_weight: float = float(os.getenv("SCORE_TYPE_WEIGHT", "0.25"))
    quality_weight: float = float(os.getenv("SCORE_QUALITY_WEIGHT", "0.15"))
    max_weight_per_genre: float = float(os.getenv("SCORE_MAX_WEIGHT_PER_GENRE", "2.0"))
    noise_floor: float = float(os.getenv("SCORE_NOISE_FLOOR", "0.2"))
    max_results: int = int(os.getenv("MAX_RESULTS", "10"))
    max_per_franchise: int = int(os.getenv("MAX_PER_FRANCHISE", "1"))
    top_genres_size: int = int(os.getenv("TOP_GENRES_SIZE", "6"))
    continue_limit: int = int(os.getenv("CONTINUE_LIMIT", "5"))

settings = Settings()
