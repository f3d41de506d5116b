import asyncio
import logging
from contextlib import asynccontextmanager

import logfire
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from indexer_service.application.api.v1.errors import map_service_error
from indexer_service.application.api.v1.routes import health, indexers
from indexer_service.application.di import create_container
from indexer_service.config import Config, configure_logging
from indexer_service.domain.indexer.service.registry import HandlerRegistry
from indexer_service.domain.shared.error import IndexerServiceError
from indexer_service.infrastructure.persistence.migrate import run_migrations
from indexer_service.infrastructure.worker.worker import WorkerPool
from indexer_service.util.di.fastapi import setup_dishka

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = app.state.dishka_container
    config = await container.get(Config)

    if config.database.auto_migrate:
        await asyncio.to_thread(run_migrations, config.database.url)

    # Build (and validate) the handler registry before serving requests
    await container.get(HandlerRegistry)

    try:
        if config.worker.enabled:
            worker_pool = await container.get(WorkerPool)
            async with worker_pool:
                yield
        else:
            logger.info("Background workers disabled")
            yield
    finally:
        await container.close()


def create_app(config: Config | None = None) -> FastAPI:
    """Create FastAPI application."""
    # Pydantic Settings populates from env vars at runtime
    config = config or Config()  # type: ignore[call-arg]

    configure_logging(config.logging)
    logger.info("Starting %s v%s", config.server.name, config.server.version)

    app_instance = FastAPI(
        title=config.server.name,
        description=config.server.description,
        version=config.server.version,
        lifespan=lifespan,
    )

    # Instrument FastAPI for automatic tracing of HTTP requests
    logfire.instrument_fastapi(app_instance)

    container = create_container(config)
    setup_dishka(container, app_instance)

    app_instance.include_router(health.router)
    app_instance.include_router(indexers.router, prefix="/v1")

    @app_instance.exception_handler(IndexerServiceError)
    async def service_error_handler(request: Request, exc: IndexerServiceError):
        http_exc = map_service_error(exc)
        return JSONResponse(status_code=http_exc.status_code, content=http_exc.detail)

    @app_instance.exception_handler(404)
    async def not_found_handler(request: Request, exc: Exception):
        return PlainTextResponse("The requested resource was not found", status_code=404)

    # Global exception handler - logs all unhandled exceptions
    @app_instance.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"code": "INTERNAL_ERROR", "message": "Internal server error"},
        )

    return app_instance
