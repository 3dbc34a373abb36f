"""
FastAPI application entry point for the Vinlogg backend.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from vinlogg import __version__
from vinlogg.config import Settings, get_settings
from vinlogg.dependencies import Services, build_services
from vinlogg.errors import register_error_handlers
from vinlogg.offline import router as offline_router
from vinlogg.routes import router


def create_app(
    settings: Optional[Settings] = None, services: Optional[Services] = None
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="Vinlogg API", version=__version__)
    app.state.settings = settings
    app.state.services = services or build_services(settings)
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    app.include_router(offline_router)
    return app


app = create_app()
