"""
Application entry point: logging, database pool lifecycle, routers and
error rendering.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from peerpair.config import settings
from peerpair.db.pool import db_pool
from peerpair.db.schema import create_schema
from peerpair.features.pairing import pairing_router
from peerpair.features.pairing.domain.errors import PairingError
from peerpair.infrastructure.observability.logging import get_logger, log_request, setup_logging
from peerpair.routes import health

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    await db_pool.initialize()
    try:
        if settings.DB_AUTO_CREATE_SCHEMA:
            await create_schema()
    except Exception as e:
        logger.error("Failed to create schema", error=str(e))
        await db_pool.close()
        raise

    logger.info("All services initialized successfully")

    yield

    logger.info("Application shutting down")
    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))


app = FastAPI(
    title="PeerPair",
    description="Peer pair-programming matching, requests and sessions",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(pairing_router)


@app.exception_handler(PairingError)
async def pairing_error_handler(request: Request, exc: PairingError):
    if exc.status_code >= 500:
        logger.error("Pairing request failed", path=request.url.path, code=exc.code, **exc.context)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
        member_id=request.headers.get(settings.MEMBER_ID_HEADER),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
