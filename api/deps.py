"""
FastAPI dependencies for the reconciliation routes.

The engine and generation manager are created by the app factory and kept on
``app.state``.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from reconciliation import EngineConfig, Generation, GenerationManager, ReconciliationEngine

logger = logging.getLogger(__name__)


def get_engine(request: Request) -> ReconciliationEngine:
    return request.app.state.engine


def get_config(request: Request) -> EngineConfig:
    return request.app.state.engine.config


def get_generation(request: Request) -> Generation:
    """
    The generation serving this request.

    Raises:
        HTTPException: 503 until the first generation has been loaded
    """
    manager: GenerationManager = request.app.state.manager
    if not manager.is_loaded:
        logger.warning("Request received before any generation was loaded")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No gazetteer loaded",
        )
    return manager.active


def get_base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


def get_reconcile_path(request: Request) -> str:
    return request.app.state.reconcile_path


# Type aliases for dependency injection
Engine = Annotated[ReconciliationEngine, Depends(get_engine)]
Config = Annotated[EngineConfig, Depends(get_config)]
ActiveGeneration = Annotated[Generation, Depends(get_generation)]
BaseUrl = Annotated[str, Depends(get_base_url)]
ReconcilePath = Annotated[str, Depends(get_reconcile_path)]
