"""Entry point for serving the Service Orders API.

Host and port are read from the ``API_HOST`` and ``API_PORT``
environment variables (defaults ``0.0.0.0`` and ``8000``); the log
level follows ``LOG_LEVEL``.

Usage:
    python run.py
"""
import asyncio

from uvicorn import Config, Server

from service_orders_api.app.core.config import settings
from service_orders_api.app.main import app


async def main() -> None:
    config = Config(
        app=app,
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    await Server(config).serve()


if __name__ == "__main__":
    asyncio.run(main())
