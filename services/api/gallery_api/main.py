# services/api/gallery_api/main.py

import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .auth import TokenIssuer
from .config import Settings, get_settings
from .db import Database
from .errors import install_error_handlers
from .janitor import RevocationSweeper
from .logging_mw import RequestLoggingMiddleware, configure_logging
from .security import BodySizeLimitMiddleware, RateLimiter
from .storage import LocalStorage, build_storage

from .routes_auth import router as auth_router
from .routes_gallery import router as gallery_router

def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Everything request handlers need hangs off app.state; nothing reads
    process-wide config after this point.

        uvicorn gallery_api.main:create_app --factory
    """
    settings = settings or get_settings()
    configure_logging()

    db = Database(settings)
    sweeper = (
        RevocationSweeper(db.SessionLocal, settings.REVOCATION_SWEEP_SECONDS)
        if int(settings.REVOCATION_SWEEP_SECONDS) > 0
        else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if sweeper is not None:
            sweeper.start()
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.stop()
            app.state.rate_limiter.close()
            db.dispose()

    app = FastAPI(title="Gallery API", version="1.0.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.db = db
    app.state.tokens = TokenIssuer.from_settings(settings)
    app.state.storage = build_storage(settings)
    app.state.rate_limiter = RateLimiter(settings)
    app.state.sweeper = sweeper

    install_error_handlers(app, settings)

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=int(settings.MAX_JSON_BODY_MB) * 1024 * 1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.CORS_ORIGIN.split(",") if o.strip()],
        allow_credentials=settings.CORS_ORIGIN.strip() != "*",
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(auth_router)
    app.include_router(gallery_router)

    if isinstance(app.state.storage, LocalStorage):
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    @app.get("/api/health")
    def health():
        return {
            "success": True,
            "message": "Server is running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app
