"""
FastAPI application exposing the scoring engine's read models.

The standings and transaction UIs read stored points through this API; the
scheduler triggers scoring runs through the protected calculate endpoint.

Key FastAPI Features Used:
- Automatic API documentation (OpenAPI/Swagger at /docs)
- Data validation with Pydantic models
- Dependency injection for database sessions

The session factory lives on ``app.state`` rather than in a module global,
so tests (or a second deployment) can hand create_app their own database.

Run locally:
    uvicorn cfb_fantasy.api.main:app --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

from .. import __version__
from ..config import Settings, settings
from ..database.connection import build_engine, build_session_factory
from .routers import points, standings


def create_app(session_factory: sessionmaker | None = None, app_settings: Settings | None = None) -> FastAPI:
    """Build the application.

    Args:
        session_factory: Sessions for request handlers; built from
            settings.database_url when omitted
        app_settings: Settings override (the sync key, scoring rules, ...)
    """
    app_settings = app_settings or settings
    if session_factory is None:
        engine = build_engine(
            app_settings.database_url, app_settings.database_echo, app_settings.database_pool_size
        )
        session_factory = build_session_factory(engine)

    app = FastAPI(
        title="CFB Fantasy Scoring API",
        description="Read models and scoring runs for college football fantasy leagues",
        version=__version__,
    )
    app.state.session_factory = session_factory
    app.state.settings = app_settings

    # Read models are consumed by browser UIs on other origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {
            "message": "CFB Fantasy Scoring API",
            "version": __version__,
            "docs": f"http://{app_settings.api_host}:{app_settings.api_port}/docs",
        }

    @app.get("/health")
    async def health_check():
        """Health check for load balancers and monitoring."""
        return {
            "status": "healthy",
            "service": "CFB Fantasy Scoring",
            "bracket_format": app_settings.bracket_format,
        }

    app.include_router(standings.router, prefix="/api/leagues", tags=["standings"])
    app.include_router(points.router, prefix="/api", tags=["points"])

    return app


app = create_app()
