from datetime import datetime, timezone
from typing import Any, Dict
from dotenv import load_dotenv

# .env 파일 로드
load_dotenv()

from fastapi import FastAPI, Response
from starlette.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
import structlog

from .api.v1.webhooks import router as webhooks_router
from .api.v1.instagram_auth import router as instagram_router
from .api.v1.facebook_auth import router as facebook_router
from .api.v1.messenger_profile import router as messenger_profile_router
from .core.config import get_settings
from .core.error_handler import setup_error_handlers
from .core.logging_config import setup_logging
from .database import init_database


logger = structlog.get_logger(__name__)


def create_app(init_db: bool = True) -> FastAPI:
    """Create and configure FastAPI application instance."""
    settings = get_settings()
    setup_logging(level=settings.log_level, enable_colors=settings.log_colors)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        redoc_url=None,
    )
    app.state.started_at = datetime.now(timezone.utc)

    setup_error_handlers(app)

    # CORS (safe default; tighten in production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(webhooks_router, prefix="/api/v1")
    app.include_router(instagram_router, prefix="/api/v1")
    app.include_router(facebook_router, prefix="/api/v1")
    app.include_router(messenger_profile_router, prefix="/api/v1")

    @app.get("/")
    async def root() -> Dict[str, Any]:
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
            "started_at": app.state.started_at.isoformat(),
        }

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    if init_db:
        @app.on_event("startup")
        async def startup_event():
            try:
                init_database()
                logger.info("database_initialized")
            except Exception as e:
                logger.warning("database_init_skipped", error=str(e))

    return app


app = create_app()
