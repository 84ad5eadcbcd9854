import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, configure_logging
from db import build_engine, build_session_pool, init_db
from services.assets import AssetManager
from services.blob_store import BlobStore, CloudinaryBlobStore
from services.ingestion import IngestionGate
from webapp.api import router as api_router
from webapp.auth import AdminGuard
from webapp.errors import register_error_handlers

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, blob_store: Optional[BlobStore] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    # Контекстный менеджер для жизненного цикла приложения
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        engine = build_engine(settings.database_url)
        store = blob_store or CloudinaryBlobStore.from_settings(settings)

        app.state.session_pool = build_session_pool(engine)
        app.state.assets = AssetManager(store, IngestionGate(store, folder=settings.media_folder))
        await init_db(engine)

        yield

        # Shutdown
        if blob_store is None:
            await store.aclose()
        await engine.dispose()
        logger.info("🔌 Соединение с базой данных закрыто")

    app = FastAPI(
        title="Pashto Dictionary API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.admin_guard = AdminGuard(settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    async def health_check():
        """Проверка работоспособности API"""
        return {"status": "healthy", "message": "Pashto Dictionary API is running"}

    return app
