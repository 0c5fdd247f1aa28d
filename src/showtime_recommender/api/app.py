from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from showtime_recommender.api.routes import router
from showtime_recommender.core.config import ENV_PREFIX, RankingConfig, parse_csv_env
from showtime_recommender.core.engine import RecommendationEngine
from showtime_recommender.core.sources import (
    CatalogSource,
    DataDirCatalogSource,
    DataDirPreferenceSource,
    PreferenceSource,
)


def create_app(
    *,
    catalog_source: CatalogSource | None = None,
    preference_source: PreferenceSource | None = None,
    engine: RecommendationEngine | None = None,
) -> FastAPI:
    app = FastAPI(title="Showtime Recommender", version="0.1.0")

    # Attach shared components.
    app.state.catalog_source = catalog_source or DataDirCatalogSource()
    app.state.preference_source = preference_source or DataDirPreferenceSource()
    app.state.engine = engine or RecommendationEngine(RankingConfig.from_env())

    # CORS is opt-in. Configure allowed origins via env var, e.g.
    #   SHOWTIME_RECOMMENDER_CORS_ORIGINS=https://your.site,https://admin.your.site
    cors_origins = parse_csv_env(f"{ENV_PREFIX}CORS_ORIGINS")
    if cors_origins:
        # Allow '*' for quick demos; do not allow credentials with wildcard.
        allow_all = "*" in cors_origins
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"] if allow_all else cors_origins,
            allow_credentials=False,
            allow_methods=["*"] if allow_all else ["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    # Ensure unexpected errors don't leak internals.
    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request, exc: Exception):
        logger.opt(exception=exc).error("Unhandled error on {}", request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(router)
    return app


app = create_app()
