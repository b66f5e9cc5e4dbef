"""Entry point for the Library Records API server.

Starts the FastAPI application under uvicorn.  Host, port, log level
and the location of the store are read from the environment (see
``library_records_api.app.core.config``), for example::

    STORAGE_PATH=/var/lib/library/records.mem PORT=8080 python run.py

Only one server process may use a given store file at a time.
"""
import asyncio
import logging

from uvicorn import Config, Server

from library_records_api.app.core.config import settings
from library_records_api.app.main import app


async def main() -> None:
    """Serve the API until interrupted."""
    config = Config(
        app=app,
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
        # A single worker keeps every request on one event loop.
        workers=1,
    )
    server = Server(config)
    await server.serve()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("Server stopped")
