import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings
from core.database import dispose_database, init_database
from core.logging import setup_logging
from ingestion.cache_service import StalenessCache
from ingestion.registry import build_provider
from ingestion.staleness import StalenessPolicy
from routes.api_v1 import api_v1_router
from routes.api_v1.errors import install_error_handlers

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

install_error_handlers(app)
app.include_router(api_v1_router)


@app.on_event("startup")
async def on_startup() -> None:
    """Open the store, build the provider client and the staleness cache over both."""
    db = await init_database(settings.database_url)
    provider = build_provider(settings)
    app.state.provider = provider
    app.state.cache = StalenessCache(
        db,
        provider,
        policy=StalenessPolicy(live_quota_headroom=settings.live_quota_headroom),
        capacity=settings.cache_capacity,
    )
    logger.info("Application startup complete (provider=%s, cache capacity=%s)", provider.name, settings.cache_capacity)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    cache = getattr(app.state, "cache", None)
    if cache is not None:
        await cache.shutdown()
    provider = getattr(app.state, "provider", None)
    if provider is not None:
        await provider.aclose()
    await dispose_database()
    logger.info("Application shutdown complete")


@app.get("/health")
async def health() -> dict:
    """Simple health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=8000, log_config=None)
