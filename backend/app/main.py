import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import api_router
from app.config import settings
from app.core.error_handlers import register_error_handlers
from app.core.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from app.core.rate_limit import global_rate_limit

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuse to start with the default secret key outside debug mode
    if not settings.DEBUG and settings.SECRET_KEY == "change-me-in-production":
        raise RuntimeError(
            "SECRET_KEY is still the default value. "
            "Set a strong SECRET_KEY env var before running in production."
        )
    logger.info("%s %s starting", settings.APP_NAME, settings.APP_VERSION)
    yield
    from app.database import engine

    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
    dependencies=[Depends(global_rate_limit)],
)

# --- Middleware (outermost first) ---

app.add_middleware(SecurityHeadersMiddleware, enable_hsts=not settings.DEBUG)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
)

# --- Error handlers ---
register_error_handlers(app)

# --- Routes ---
app.include_router(api_router)


@app.get("/api/health")
async def health_check():
    """Deep health check: verifies DB and Redis connectivity."""
    checks: dict = {"version": settings.APP_VERSION}
    healthy = True

    start = time.monotonic()
    try:
        from sqlalchemy import text

        from app.database import async_session_factory

        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = {"status": "ok", "latency_ms": round((time.monotonic() - start) * 1000, 1)}
    except Exception as exc:
        healthy = False
        checks["database"] = {"status": "error", "detail": str(exc)[:200]}

    start = time.monotonic()
    try:
        import redis.asyncio as aioredis

        r = aioredis.from_url(settings.REDIS_URL, socket_connect_timeout=3)
        await r.ping()
        await r.aclose()
        checks["redis"] = {"status": "ok", "latency_ms": round((time.monotonic() - start) * 1000, 1)}
    except Exception as exc:
        healthy = False
        checks["redis"] = {"status": "error", "detail": str(exc)[:200]}

    # Email is delivered by Celery over the same Redis broker
    checks["celery_broker"] = checks["redis"]["status"]
    checks["status"] = "healthy" if healthy else "degraded"

    return JSONResponse(content=checks, status_code=200 if healthy else 503)
