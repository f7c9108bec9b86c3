"""
FastAPI Application Entry Point.
Initializes the FastAPI app with middleware, CORS, error handling and routes.
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException

from bruinsplit.api.v1 import calls
from bruinsplit.config import settings
from bruinsplit.core.cache import cache
from bruinsplit.core.call_registry import CallRegistry
from bruinsplit.core.database import engine
from bruinsplit.core.logging_config import configure_logging
from bruinsplit.core.websocket import connection_manager
from bruinsplit.services.call_reaper import start_call_reaper

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    await cache.connect()
    reaper = start_call_reaper(
        app.state.call_registry,
        settings.call_idle_timeout_seconds,
        settings.call_reaper_interval_seconds,
    )
    yield
    # Shutdown
    if reaper is not None:
        reaper.cancel()
        try:
            await reaper
        except asyncio.CancelledError:
            pass
    await cache.disconnect()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title="BruinSplit Call Signaling Server",
    description="WebRTC signaling for BruinSplit ride calls",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Call state lives for the lifetime of the process
app.state.call_registry = CallRegistry()
app.state.notifier = connection_manager

# Rate limiter state and error handler
app.state.limiter = calls.limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Render every HTTP error as {"error": message}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its status and duration."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health Check Endpoints
@app.get("/health", tags=["Health"])
async def health_check():
    """Basic health check endpoint."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "environment": settings.environment,
        }
    )


@app.get("/health/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness check endpoint.
    Verifies database and cache connectivity.
    """
    checks = {
        "database": False,
        "redis": "not_configured" if not settings.redis_url else False,
    }

    try:
        from sqlalchemy import text
        from bruinsplit.core.database import AsyncSessionLocal

        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
            checks["database"] = True
    except Exception as e:
        logger.warning(f"Readiness: database check failed: {e}")

    if settings.redis_url:
        try:
            await cache.exists("health_check")
            checks["redis"] = cache.redis is not None
        except Exception as e:
            logger.warning(f"Readiness: redis check failed: {e}")

    redis_ok = checks["redis"] == "not_configured" or checks["redis"] is True
    all_healthy = checks["database"] and redis_ok

    return JSONResponse(
        status_code=200 if all_healthy else 503,
        content={
            "status": "ready" if all_healthy else "not ready",
            "checks": checks,
        }
    )


@app.get("/health/calls", tags=["Health"])
async def calls_health_check(request: Request):
    """Active call counts from the in-memory registry."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            **request.app.state.call_registry.stats(),
            "connected_users": len(connection_manager.user_sessions),
        }
    )


app.include_router(
    calls.router,
    prefix="/api/calls",
    tags=["Calls"]
)

# Save reference to FastAPI app (for testing)
fastapi_app = app

# Socket.IO wraps FastAPI: /socket.io/* goes to Socket.IO, everything else to FastAPI
app = connection_manager.get_asgi_app(fastapi_app)
