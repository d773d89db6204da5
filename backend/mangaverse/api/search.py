"""
search.py - Title autocomplete backed by the catalog search cache
"""
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from mangaverse.api.deps import get_gateway
from mangaverse.schemas import TitleSearchResponse
from mangaverse.services.catalog_errors import CatalogAPIError, RateLimitExceeded
from mangaverse.services.catalog_gateway import CatalogGateway

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/title-search", response_model=TitleSearchResponse)
async def title_search(
    q: str = Query("", description="Title to look up"),
    type: str = Query("anime", pattern="^(anime|manga|manhwa)$"),
    gateway: CatalogGateway = Depends(get_gateway),
) -> TitleSearchResponse:
    if not q.strip():
        return TitleSearchResponse(results=[])
    try:
        results = await gateway.search_titles(q, type)
    except RateLimitExceeded:
        logger.warning("Catalog rate limit reached during title search")
        return TitleSearchResponse(results=[], error="Rate limit reached")
    except CatalogAPIError as e:
        logger.error(f"Title search failed for {q!r}: {e}")
        raise HTTPException(status_code=502, detail="Failed to fetch suggestions")
    return TitleSearchResponse(results=results)
