from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wingman.api.routers import activities, locations, maps, weather
from wingman.config import configure_logging, get_settings
from wingman.infra.database import build_engine
from wingman.infra.db.tables import metadata


def create_app(engine=None) -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)
    app = FastAPI(title="Wingman Activities API", version="0.1.0")
    if engine is None and settings.database_url:
        engine = build_engine(settings.database_url)
    if engine is not None:
        metadata.create_all(engine)
    app.state.db_engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(activities.router, prefix="/api")
    app.include_router(maps.router, prefix="/api")
    app.include_router(weather.router, prefix="/api")
    app.include_router(locations.router, prefix="/api")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
