"""
Main entrypoint for the Service Orders API.

This module assembles the FastAPI application, sets up logging, the
error envelope handlers and the versioned routers.  The ``create_app``
function builds and configures the app, which is then instantiated at
module import time as ``app``::

    uvicorn service_orders_api.app.main:app --reload
"""

from fastapi import FastAPI

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.db import init_db
from .core.errors import register_error_handlers
from .core.logging_config import setup_logging


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.
    """
    # Logging first so that anything below can log.
    setup_logging(settings.log_level, settings.log_file or None, settings.log_levels)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    register_error_handlers(app)
    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        # Creates the database file if needed and applies pending migrations.
        init_db()

    return app


app = create_app()
