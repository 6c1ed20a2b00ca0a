"""FastAPI application for the family running challenge."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api.exception_handlers import register_exception_handlers
from .api.routes import auth, challenge, dashboard
from .api.schemas import HealthResponse
from .config import Settings, get_settings
from .db.database import ChallengeDatabase
from .utils.log_sanitizer import install_log_sanitizer

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup with credential redaction on every handler."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    install_log_sanitizer()


def check_configuration(settings: Settings) -> None:
    """Log what is and isn't configured at startup."""
    if not settings.strava_client_id or not settings.strava_client_secret:
        logger.warning("Strava OAuth not configured. Login and progress refresh will be unavailable.")
    else:
        logger.info("Strava OAuth: configured")

    if settings.jwt_secret_key == Settings.model_fields["jwt_secret_key"].default:
        logger.warning("JWT_SECRET_KEY is the built-in default. Set it before deploying.")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; ``settings`` defaults to the environment."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting run-challenge v{__version__}")
        logger.info(f"Challenge DB: {settings.database_path}")
        check_configuration(settings)

        app.state.db = ChallengeDatabase(settings.database_path, pool_size=settings.db_pool_size)
        try:
            yield
        finally:
            logger.info("Shutting down run-challenge")
            app.state.db.close()

    app = FastAPI(
        title="Running Challenge API",
        description="Family daily-distance running challenge backed by Strava",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
    app.include_router(challenge.router, prefix="/api/v1", tags=["challenge"])
    app.include_router(dashboard.router, prefix="/api/v1", tags=["dashboard"])

    @app.get("/api/v1/health", response_model=HealthResponse)
    async def health(request: Request):
        """Health check endpoint."""
        db: ChallengeDatabase = request.app.state.db
        return HealthResponse(status="healthy", database="open" if db.is_open else "closed")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
