from fastapi import FastAPI
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.cors import CORSMiddleware

from mangaverse.utils.logger import logger
from mangaverse.api.recommendations import router as recommendations_router
from mangaverse.api.search import router as search_router
from mangaverse.services.catalog_client import CatalogClient
from mangaverse.services.catalog_gateway import CatalogGateway
from mangaverse.services.recommendation_service import RecommendationService
from mangaverse.utils.timezone import utc_now


app = FastAPI(title="MangaVerse Recommendations API", version="1.0.0")

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recommendations_router, prefix="/api/recommendations", tags=["Recommendations"])
app.include_router(search_router, prefix="/api", tags=["Search"])


@app.on_event("startup")
async def startup_event():
    # One catalog client per process: its queue is the only path to the upstream APIs.
    catalog = CatalogClient()
    gateway = CatalogGateway(catalog)
    app.state.catalog = catalog
    app.state.gateway = gateway
    app.state.recommendation_service = RecommendationService(gateway)
    logger.info("Catalog client ready")


@app.on_event("shutdown")
async def shutdown_event():
    catalog = getattr(app.state, "catalog", None)
    if catalog is not None:
        await catalog.aclose()

@app.get("/")
def root():
    return {"status": "MangaVerse API Running"}

@app.get("/health")
async def health_check():
    """Simple health check with catalog queue/cache stats"""
    catalog = getattr(app.state, "catalog", None)
    stats = {}
    if catalog is not None:
        stats = {
            "queue_pending": catalog.queue.pending,
            "candidate_cache_entries": len(catalog.candidate_cache),
            "search_cache_entries": len(catalog.search_cache),
        }
    return {"status": "healthy", "timestamp": utc_now().isoformat(), **stats}
