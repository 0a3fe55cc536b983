import asyncio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import time
from loguru import logger
import uuid
from redis.asyncio import Redis
from prometheus_client import generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST
from fastapi.responses import Response

from app.api.v1 import auth, orders, payments, menu, events, admin, users, realtime
from app.core.config import settings
from app.core.exceptions import AppError
from app.core.metrics import REQUEST_COUNT, REQUEST_LATENCY
from app.db.redis import redis_url
from app.db.session import AsyncSessionLocal
from app.services.admin import seed_admin_users
from app.services.realtime import relay_events

APP_NAME = "concession-connection"

app = FastAPI(
    title="Concession Connection API",
    description="Ordering and payments API for a food-truck concession",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.middleware("http")
async def log_requests(request: Request, call_next):
    request_id = str(uuid.uuid4())
    logger.info(f"[{request_id}] {request.method} {request.url.path}")

    start_time = time.time()

    try:
        response = await call_next(request)
        process_time = time.time() - start_time

        REQUEST_LATENCY.labels(
            APP_NAME,
            request.method,
            request.url.path
        ).observe(process_time)

        REQUEST_COUNT.labels(
            APP_NAME,
            request.method,
            request.url.path,
            response.status_code
        ).inc()

        logger.info(f"[{request_id}] Completed {response.status_code} in {process_time:.4f}s")

        return response
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception(f"[{request_id}] Failed in {process_time:.4f}s: {str(e)}")

        return JSONResponse(
            status_code=500,
            content={"detail": "Internal Server Error"}
        )


app.include_router(
    auth.router,
    prefix=f"{settings.API_V1_STR}/auth",
    tags=["authentication"]
)

app.include_router(
    orders.router,
    prefix=f"{settings.API_V1_STR}/orders",
    tags=["orders"]
)

app.include_router(
    payments.router,
    prefix=f"{settings.API_V1_STR}/payments",
    tags=["payments"]
)

app.include_router(
    menu.router,
    prefix=f"{settings.API_V1_STR}/items",
    tags=["menu"]
)

app.include_router(
    events.router,
    prefix=settings.API_V1_STR,
    tags=["events"]
)

app.include_router(
    admin.router,
    prefix=f"{settings.API_V1_STR}/admin",
    tags=["admin"]
)

app.include_router(
    users.router,
    prefix=f"{settings.API_V1_STR}/users",
    tags=["users"]
)

app.include_router(
    realtime.router,
    prefix=settings.API_V1_STR,
    tags=["realtime"]
)


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@app.on_event("startup")
async def check_configuration():
    missing = settings.missing_production_settings()
    if missing:
        level = "ERROR" if settings.is_production else "WARNING"
        logger.log(level, f"Missing configuration: {', '.join(missing)}")
    if not settings.square_configured:
        logger.warning("Square is not configured; payments will answer 503")


@app.on_event("startup")
async def startup_db_client():
    logger.info(f"Connecting to Redis at {settings.REDIS_HOST}:{settings.REDIS_PORT}...")

    try:
        app.state.redis = Redis.from_url(
            redis_url(),
            decode_responses=True
        )
        await app.state.redis.ping()
        logger.info("Connected to Redis")
        app.state.fanout_relay = asyncio.create_task(relay_events(app.state.redis))
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {str(e)}")
        logger.error("Make sure Redis is running and accessible:")
        logger.error(f"- Host: {settings.REDIS_HOST}")
        logger.error(f"- Port: {settings.REDIS_PORT}")

        if not settings.is_production:
            logger.warning("Continuing startup without Redis in development mode")
            app.state.redis = None
            app.state.fanout_relay = None
        else:
            raise e


@app.on_event("startup")
async def seed_admins():
    if not settings.admin_emails:
        logger.warning("ADMIN_EMAILS is empty; no admin accounts will be seeded")
        return

    async with AsyncSessionLocal() as db:
        admins = await seed_admin_users(db, settings.admin_emails)
    logger.info(f"Seeded {len(admins)} admin account(s)")


@app.on_event("shutdown")
async def shutdown_db_client():
    relay = getattr(app.state, "fanout_relay", None)
    if relay is not None:
        relay.cancel()
        try:
            await relay
        except asyncio.CancelledError:
            pass

    redis = getattr(app.state, "redis", None)
    if redis is None:
        return
    logger.info("Closing Redis connection...")
    await redis.close()
    logger.info("Redis connection closed")
