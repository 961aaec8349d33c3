# main.py
import logging
import math
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from config import Settings
from lifecycle import StreamServer
from routes import SERVICE_NAME, SERVICE_VERSION, router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Optional[Settings] = None, server: Optional[StreamServer] = None) -> FastAPI:
    """App factory; run directly with ``uvicorn main:create_app --factory``."""
    settings = settings or Settings()
    stream_server = server or StreamServer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Start the broadcast loop when the server starts
        await stream_server.start()
        try:
            yield
        finally:
            # Stop ticks and close every client before the listener goes away
            await stream_server.shutdown()

    app = FastAPI(title=SERVICE_NAME, version=SERVICE_VERSION, lifespan=lifespan)
    app.state.server = stream_server

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)

    return app


def uvicorn_config(settings: Settings, app: FastAPI) -> uvicorn.Config:
    return uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        # uvicorn takes whole seconds; round up so a short grace stays bounded
        timeout_graceful_shutdown=math.ceil(settings.shutdown_grace_seconds),
    )


def serve(settings: Optional[Settings] = None) -> int:
    """Run the server until a termination signal; return the exit status."""
    if settings is None:
        try:
            settings = Settings()
        except ValidationError as e:
            configure_logging("INFO")
            logger.error("Invalid configuration: %s", e)
            return 1
    configure_logging(settings.log_level)
    server = uvicorn.Server(uvicorn_config(settings, create_app(settings)))
    try:
        server.run()
    except SystemExit as e:
        logger.error("Server failed to start (exit code %s)", e.code)
        return 1
    if not server.started:
        logger.error("Server failed to start on %s:%d", settings.host, settings.port)
        return 1
    logger.info("Server stopped")
    return 0


def main():
    sys.exit(serve())


if __name__ == "__main__":
    main()
