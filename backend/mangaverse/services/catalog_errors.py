from typing import Optional


class CatalogAPIError(Exception):
    """Base exception for catalog (Jikan / AniList) errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url

class CatalogNetworkError(CatalogAPIError):
    """Raised when the network or connection to a catalog fails."""
    pass

class CatalogUnavailableError(CatalogAPIError):
    """Raised when a catalog is offline (502/503/504)."""
    pass

class CatalogResponseError(CatalogAPIError):
    """Raised when a catalog answers with a body that cannot be decoded."""
    pass

class RateLimitExceeded(CatalogAPIError):
    """Raised when a request stays throttled (429) past the retry bound."""

    def __init__(self, message: str, url: Optional[str] = None, attempts: int = 0):
        super().__init__(message, status_code=429, url=url)
        self.attempts = attempts

class RecommendationError(Exception):
    """Raised when no candidates could be computed because every catalog fetch failed."""
    pass
