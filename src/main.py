#!/usr/bin/env python3
"""
FastAPI server for the Service Bus explorer.
Browse queues, topics and messages, and manage saved connection strings.
"""

# Load environment variables first
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.errors import ExplorerError
from common.logging import get_logger
from routes import connections, health, service_bus
from services.connections.store import ConnectionStore
from services.service_bus.browser import EntityBrowser

load_dotenv()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Collaborators injected by create_app() (e.g. in tests) are kept as-is
    if getattr(app.state, "connection_store", None) is None:
        app.state.connection_store = ConnectionStore()
    if getattr(app.state, "browser", None) is None:
        app.state.browser = EntityBrowser()
    logger.info("Service Bus explorer started")
    yield
    logger.info("Service Bus explorer stopped")


async def explorer_error_handler(request: Request, exc: ExplorerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.kind}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = ", ".join(".".join(str(part) for part in error["loc"][1:]) or "body" for error in exc.errors())
    return JSONResponse(status_code=400, content={"error": f"Invalid request parameters: {fields}", "kind": "validation"})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error(f"{request.method} {request.url.path} failed: {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__, "kind": "error"})


def create_app(connection_store: ConnectionStore | None = None, browser: EntityBrowser | None = None) -> FastAPI:
    app = FastAPI(
        title="Service Bus Explorer API",
        description="Browse Azure Service Bus queues, topics and messages",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.connection_store = connection_store
    app.state.browser = browser

    app.add_exception_handler(ExplorerError, explorer_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers
    app.include_router(health.router)
    app.include_router(connections.router)
    app.include_router(service_bus.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    from common.config import config

    port = int(os.environ.get("PORT", config.port))

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        log_level="info",
    )
