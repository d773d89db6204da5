from fastapi import APIRouter, Depends, HTTPException
import logging

from mangaverse.api.deps import get_recommendation_service
from mangaverse.schemas import (
    ContinueRequest,
    ContinueResponse,
    RecommendationRequest,
    RecommendationResponse,
)
from mangaverse.services.catalog_errors import RecommendationError
from mangaverse.services.recommendation_service import RecommendationService, continue_recommendations

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/for-you", response_model=RecommendationResponse)
async def for_you(
    payload: RecommendationRequest,
    service: RecommendationService = Depends(get_recommendation_service),
) -> RecommendationResponse:
    """
    Personalized recommendations for the posted library.
    Ordering of `recommendations` is final; clients must not re-sort.
    """
    try:
        return await service.recommend(
            payload.library,
            media_type=payload.type,
            page=payload.page,
            refresh=payload.refresh,
        )
    except RecommendationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.exception("Taste-based recommendations failed")
        raise HTTPException(status_code=500, detail=f"Failed to generate recommendations: {str(e)}")


@router.post("/continue", response_model=ContinueResponse)
async def continue_watching(payload: ContinueRequest) -> ContinueResponse:
    """Series the user is currently watching/reading, most recent first."""
    items = continue_recommendations(payload.library)
    return ContinueResponse(recommendations=items, count=len(items))
