from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from src.photoshare import photo_routes, user_routes
from src.photoshare.auth import Hasher, TokenService
from src.photoshare.config import AppConfig, load_config
from src.photoshare.db import create_db_engine, create_session_factory, ensure_schema
from src.photoshare.deps import Services
from src.photoshare.errors import register_error_handlers
from src.photoshare.schemas import HealthResponse
from src.photoshare.storage import PUBLIC_PREFIX, PhotoStorage

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and diagnostics."},
    {"name": "users", "description": "Registration, login and account management (JWT bearer tokens)."},
    {"name": "photos", "description": "Public photo listing and owner-only photo upload, update and delete."},
]


# PUBLIC_INTERFACE
def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """
    Ensure the schema exists on startup.

    The service still starts when the database is unreachable; DB-backed
    endpoints fail when called, but liveness and docs stay available.
    """
    try:
        ensure_schema(app.state.engine)
    except Exception as exc:
        logger.warning("Startup DB initialization skipped: %s", exc)
    yield
    app.state.engine.dispose()


# PUBLIC_INTERFACE
def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build the application with every service handle wired from `config`."""
    config = config or load_config()
    configure_logging(config.log_level)

    app = FastAPI(
        title="Photo Sharing Backend",
        description=(
            "Backend for a photo sharing app. Provides JWT authentication, owner-only photo and "
            "account management, local image storage and relational persistence."
        ),
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=_lifespan,
    )

    engine = create_db_engine(config.database_url)
    storage = PhotoStorage(config.storage_dir, public_base_url=config.public_base_url)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.services = Services(
        config=config,
        hasher=Hasher(rounds=config.bcrypt_rounds),
        tokens=TokenService(config.jwt_secret, expire_minutes=config.access_token_minutes),
        storage=storage,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        # Bearer auth does not need credentialed CORS.
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    @app.get("/", response_model=HealthResponse, tags=["health"], summary="Health check")
    def health_check() -> HealthResponse:
        return HealthResponse(message="Healthy")

    app.include_router(user_routes.router)
    app.include_router(photo_routes.router)
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=str(storage.root)), name="public")
    return app
