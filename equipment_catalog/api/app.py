from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from equipment_catalog.api.errors import register_error_handlers
from equipment_catalog.api.middleware import RequestLogMiddleware, RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from equipment_catalog.api.routers import equipment_types, equipments, health
from equipment_catalog.core.settings import Settings
from equipment_catalog.db.base import Base
from equipment_catalog.db.session import create_engine_and_sessionmaker
from equipment_catalog.services.equipment_service import EquipmentCatalog
from equipment_catalog.services.equipment_type_service import EquipmentTypeService

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting equipment catalog (env=%s)...", settings.env)

        app.state.settings = settings

        # --- DB ---
        db_rt = create_engine_and_sessionmaker(settings.database_url, echo=settings.db_echo)
        app.state.db_engine = db_rt.engine
        app.state.db_sessionmaker = db_rt.SessionLocal
        if settings.auto_create_db:
            Base.metadata.create_all(bind=db_rt.engine)

        # --- Services ---
        app.state.equipment_type_service = EquipmentTypeService()
        app.state.equipment_catalog = EquipmentCatalog(
            resolver=app.state.equipment_type_service.resolver,
            soft_delete=settings.equipment_soft_delete,
        )
        if settings.equipment_soft_delete:
            logger.info("Equipment deletion is logical (EQUIPMENT_SOFT_DELETE=1)")

        try:
            yield
        finally:
            logger.info("Shutting down equipment catalog...")
            db_rt.engine.dispose()
            logger.info("Equipment catalog shutdown complete.")

    is_dev = settings.env.lower() in ("dev", "development", "local", "test")
    app = FastAPI(
        title="Equipment Catalog",
        lifespan=lifespan,
        docs_url="/docs" if is_dev else None,
        redoc_url="/redoc" if is_dev else None,
        openapi_url="/openapi.json" if is_dev else None,
    )

    # Middleware
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLogMiddleware)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins or [],
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    register_error_handlers(app)

    # Routers
    app.include_router(health.router)
    app.include_router(equipment_types.router)
    app.include_router(equipments.router)

    return app
