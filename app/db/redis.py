# /app/db/redis.py
from redis.asyncio import Redis
from app.core.config import settings
import logging
import asyncio
from fastapi import HTTPException, Request
from typing import Optional

logger = logging.getLogger(__name__)


def redis_url() -> str:
    if settings.REDIS_PASSWORD:
        return f"redis://:{settings.REDIS_PASSWORD}@{settings.REDIS_HOST}:{settings.REDIS_PORT}"
    return f"redis://{settings.REDIS_HOST}:{settings.REDIS_PORT}"


async def get_redis() -> Redis:
    """Возвращает клиент Redis как зависимость FastAPI"""
    max_retries = 3
    retry_delay = 1  # секунды

    redis = None

    for attempt in range(max_retries):
        try:
            redis = Redis.from_url(redis_url(), decode_responses=True)
            await redis.ping()
            break
        except Exception as e:
            if redis:
                await redis.close()
                redis = None

            if attempt < max_retries - 1:
                logger.warning(
                    f"Redis connection attempt {attempt + 1} failed: {str(e)}. Retrying in {retry_delay}s...")
                await asyncio.sleep(retry_delay)
                retry_delay *= 2
            else:
                logger.error(f"Redis connection failed after {max_retries} attempts: {str(e)}")

    if not redis:
        error_msg = f"Could not connect to Redis ({settings.REDIS_HOST}:{settings.REDIS_PORT}). "
        if settings.REDIS_HOST == "redis":
            error_msg += "If running locally (not in Docker), set REDIS_HOST=localhost in .env."
        elif settings.REDIS_HOST == "localhost":
            error_msg += "If running in Docker, set REDIS_HOST=redis in .env."
        logger.error(error_msg)

        raise HTTPException(
            status_code=503,
            detail="Service temporarily unavailable. Please try again later."
        )

    try:
        yield redis
    finally:
        await redis.close()


def get_app_redis(request: Request) -> Optional[Redis]:
    """Shared client opened at startup, or None when running without Redis"""
    return getattr(request.app.state, "redis", None)
