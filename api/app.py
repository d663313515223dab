"""
GeoNames Reconciliation Service

FastAPI application factory.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.protocol import ProtocolError
from api.routes import router
from api.schemas import HealthResponse
from config.settings import settings
from gazetteer.loaders import load_generation
from reconciliation import BatchTooLarge, EngineConfig, GenerationManager, ReconciliationEngine

logger = logging.getLogger(__name__)


def create_app(
    manager: Optional[GenerationManager] = None,
    config: Optional[EngineConfig] = None,
) -> FastAPI:
    """
    Build the service.

    Args:
        manager: Generation manager to serve from. When it has no generation
            loaded, the lifespan loads one from the configured data source.
        config: Engine configuration (default: from settings)
    """
    config = config or (manager.config if manager else EngineConfig.from_settings())
    manager = manager or GenerationManager(config)
    engine = ReconciliationEngine(manager, config=config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown events."""
        logger.info("Starting reconciliation service...")
        if not manager.is_loaded:
            load_generation(manager)
        logger.info(f"Serving generation {manager.active.number} ({len(manager.active.store):,} entities)")

        yield

        logger.info("Shutting down reconciliation service...")
        engine.close()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        description="W3C Reconciliation Service API over the GeoNames gazetteer",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.manager = manager
    app.state.engine = engine
    app.state.reconcile_path = settings.RECONCILE_PATH

    # Reconciliation clients call from the browser
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(ProtocolError)
    async def protocol_error_handler(request: Request, exc: ProtocolError) -> JSONResponse:
        logger.info(f"Rejected malformed request to {request.url.path}: {exc}")
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_request", "detail": str(exc)},
        )

    @app.exception_handler(BatchTooLarge)
    async def batch_too_large_handler(request: Request, exc: BatchTooLarge) -> JSONResponse:
        return JSONResponse(
            status_code=413,
            content={
                "error": "batch_too_large",
                "detail": str(exc),
                "max_batch_size": exc.limit,
            },
        )

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Loaded generation and entity count."""
        if not manager.is_loaded:
            return HealthResponse(status="loading")
        generation = manager.active
        return HealthResponse(
            status="healthy",
            generation=generation.number,
            entities=len(generation.store),
            loaded_at=generation.loaded_at.isoformat(),
        )

    app.include_router(router, prefix=settings.RECONCILE_PATH)
    return app
