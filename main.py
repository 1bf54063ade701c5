import os
import secrets
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from alerts import start_alert_scheduler
from auth import auth_router, create_password_context
from config import Settings, get_settings
from currency import CurrencyService, currency_router
from dashboard import dashboard_router
from database import create_session_factory
from errors import register_error_handlers
from insights import InsightService, ai_router
from logging_config import configure_logging
from router import router
from tokens import TokenService
from uploads import UploadStore, upload_router

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    secret = settings.jwt_secret
    if not secret:
        secret = secrets.token_urlsafe(48)
        logger.warning(
            "jwt_secret_missing",
            detail="JWT_SECRET is not set; using a temporary key, tokens will not survive a restart",
        )

    session_factory = create_session_factory(settings.database_url)
    os.makedirs(settings.upload_dir, exist_ok=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if settings.enable_scheduler:
            scheduler = start_alert_scheduler(session_factory, settings.alert_hour)
        logger.info("app_started")
        yield
        if scheduler is not None:
            scheduler.shutdown(wait=False)

    app = FastAPI(title="Personal Finance Tracker API", lifespan=lifespan)

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.tokens = TokenService(
        secret,
        algorithm=settings.jwt_algorithm,
        expires=timedelta(days=settings.token_expire_days),
    )
    app.state.pwd_context = create_password_context(settings.bcrypt_rounds)
    app.state.uploads = UploadStore(settings.upload_dir, settings.max_upload_size_bytes)
    app.state.insights = InsightService()
    app.state.currency = CurrencyService()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(auth_router, prefix="/api", tags=["authentication"])
    app.include_router(router, prefix="/api", tags=["finance"])
    app.include_router(dashboard_router, prefix="/api/dashboard", tags=["dashboard"])
    app.include_router(ai_router, prefix="/api/ai", tags=["insights"])
    app.include_router(currency_router, prefix="/api", tags=["currency"])
    app.include_router(upload_router, prefix="/api", tags=["uploads"])
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    @app.get("/")
    def home():
        return {"message": "Welcome to Personal Finance Tracker API"}

    return app


if __name__ == "__main__":
    uvicorn.run("main:create_app", factory=True, host="127.0.0.1", port=8000)
