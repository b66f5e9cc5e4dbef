"""
Main entrypoint for the Library Records API.

``create_app`` builds the FastAPI application: it configures logging,
mounts the versioned routers and registers the handlers that turn
service errors into message envelopes.  The storage is opened when the
application starts and closed when it stops, unless a ready storage
object is passed in (as the tests do).

Error envelopes::

    400  {"InvalidPayload": "..."}   payload rejected (including type errors)
    404  {"NotFound": "..."}         unknown id, unknown reference, empty list
    500  {"Error": "..."}            the store itself failed
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .api.v1.router import router as v1_router
from .core.config import Settings, settings
from .core.errors import LibraryError
from .core.logging_config import setup_logging
from .core.storage import LibraryStorage, open_storage
from .schemas.message import Message, MessageKind
from .stable import StorageError


STATUS_BY_KIND = {
    MessageKind.SUCCESS: 200,
    MessageKind.INVALID_PAYLOAD: 400,
    MessageKind.NOT_FOUND: 404,
    MessageKind.ERROR: 500,
}

logger = logging.getLogger(__name__)


def _envelope_response(message: Message) -> JSONResponse:
    return JSONResponse(status_code=STATUS_BY_KIND[message.kind], content=message.envelope())


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError) -> JSONResponse:
        return _envelope_response(exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        return _envelope_response(Message(kind=MessageKind.INVALID_PAYLOAD, text=problems))

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        # The operation is aborted; nothing it did before failing is rolled
        # back by this handler, so make sure the failure is loud.
        logger.critical("Storage failure during %s %s", request.method, request.url.path, exc_info=exc)
        return _envelope_response(Message(kind=MessageKind.ERROR, text=f"Storage failure: {exc}"))


def create_app(
    app_settings: Optional[Settings] = None,
    storage: Optional[LibraryStorage] = None,
    clock: Optional[Callable[[], int]] = None,
) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    app_settings : Optional[Settings]
        Settings to use instead of the environment-derived defaults.
    storage : Optional[LibraryStorage]
        An already opened storage.  When omitted, the storage described
        by the settings is opened at start-up and closed at shutdown.
    clock : Optional[Callable[[], int]]
        Timestamp source in nanoseconds; defaults to ``time.time_ns``.
    """
    cfg = app_settings or settings
    # Initialise logging before anything else so that start-up can log.
    setup_logging(cfg.log_level, cfg.log_file or None)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = app.state.storage is None
        if owned:
            app.state.storage = open_storage(cfg)
        try:
            yield
        finally:
            if owned:
                app.state.storage.close()
                app.state.storage = None

    app = FastAPI(title=cfg.project_name, version=cfg.api_version, debug=cfg.debug, lifespan=lifespan)
    app.state.settings = cfg
    app.state.storage = storage
    app.state.clock = clock or time.time_ns

    app.include_router(v1_router, prefix="/api/v1")
    register_exception_handlers(app)
    return app


# Create the application instance at import time so that uvicorn can
# discover it without calling create_app manually.
app = create_app()
