from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from dealdesk.core.config import settings
from dealdesk.core.errors import (
    DealError,
    deal_error_handler,
    global_exception_handler,
    http_exception_handler,
)

import dealdesk.models  # noqa: F401  register all models at startup

from dealdesk.modules.connections.router import router as connections_router
from dealdesk.modules.ledger.router import router as ledger_router
from dealdesk.modules.messaging.broker import broker
from dealdesk.modules.messaging.router import router as messaging_router
from dealdesk.modules.negotiation.router import router as negotiation_router
from dealdesk.modules.notifications.router import router as notifications_router
from dealdesk.modules.settlement.router import router as settlement_router
from dealdesk.core.sentry import init_sentry

# ── Sentry: must be initialised BEFORE the FastAPI app is created ─────────────
init_sentry(settings.SENTRY_DSN, settings.SENTRY_ENVIRONMENT, settings.APP_VERSION)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    logger.info("Starting DealDesk API", env=settings.APP_ENV, realtime=settings.REALTIME_BACKEND)
    yield
    logger.info("Shutting down DealDesk API")
    await broker.close()


_is_prod = settings.APP_ENV == "production"

app = FastAPI(
    title="DealDesk API",
    description="Founder/investor deal negotiation and payment settlement.",
    version="0.1.0",
    docs_url=None if _is_prod else "/docs",
    redoc_url=None if _is_prod else "/redoc",
    openapi_url=None if _is_prod else "/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
)

app.add_exception_handler(DealError, deal_error_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)


# ── X-API-Version response header ────────────────────────────────────────────


@app.middleware("http")
async def add_version_header(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers["X-API-Version"] = "v1"
    return response


# ── Health check (root-level, not under /v1) ─────────────────────────────────


@app.get("/health")
async def health_check() -> dict:
    """Deep health check: probes the database, Redis (when used) and S3."""
    checks: dict[str, dict] = {}

    # ── Database ──────────────────────────────────────────────────────────────
    try:
        from sqlalchemy import text
        from dealdesk.core.database import async_session_factory
        async with async_session_factory() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy"}
    except Exception as exc:
        checks["database"] = {"status": "unhealthy", "error": str(exc)}

    # ── Redis ─────────────────────────────────────────────────────────────────
    if settings.REALTIME_BACKEND == "redis":
        try:
            from redis.asyncio import from_url as redis_from_url
            r = redis_from_url(settings.REDIS_URL, socket_connect_timeout=2)
            await r.ping()
            await r.aclose()
            checks["redis"] = {"status": "healthy"}
        except Exception as exc:
            checks["redis"] = {"status": "unhealthy", "error": str(exc)}

    # ── S3 / MinIO ────────────────────────────────────────────────────────────
    try:
        import boto3
        from botocore.config import Config as BotoConfig
        s3 = boto3.client(
            "s3",
            endpoint_url=settings.AWS_S3_ENDPOINT_URL or None,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_S3_REGION,
            config=BotoConfig(connect_timeout=2, read_timeout=2),
        )
        s3.head_bucket(Bucket=settings.AWS_S3_BUCKET)
        checks["s3"] = {"status": "healthy"}
    except Exception as exc:
        checks["s3"] = {"status": "unhealthy", "error": str(exc)}

    overall = (
        "healthy"
        if all(c["status"] == "healthy" for c in checks.values())
        else "degraded"
    )
    return {"status": overall, "service": "dealdesk-api", "checks": checks}


# ── /v1 versioned router ──────────────────────────────────────────────────────

api_v1 = APIRouter(prefix="/v1")

api_v1.include_router(connections_router)
api_v1.include_router(negotiation_router)
api_v1.include_router(settlement_router)
api_v1.include_router(ledger_router)
api_v1.include_router(messaging_router)
api_v1.include_router(notifications_router)

app.include_router(api_v1)
