from fastapi import Request

from mangaverse.services.catalog_gateway import CatalogGateway
from mangaverse.services.recommendation_service import RecommendationService


def get_gateway(request: Request) -> CatalogGateway:
    return request.app.state.gateway


def get_recommendation_service(request: Request) -> RecommendationService:
    return request.app.state.recommendation_service
