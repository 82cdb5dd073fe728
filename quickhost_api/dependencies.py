"""FastAPI dependencies shared across routers."""
from typing import Optional

import redis.asyncio as redis
from fastapi import HTTPException

# Global Redis client (initialized in main.py lifespan, closed on shutdown).
# Carries the realtime row-change channels; the service runs without it.
redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """
    FastAPI dependency for endpoints that cannot work without Redis
    (the realtime SSE stream).

    Raises HTTPException 503 if Redis is not connected.
    """
    if redis_client is None:
        raise HTTPException(status_code=503, detail="Redis not connected")
    return redis_client


def get_optional_redis() -> Optional[redis.Redis]:
    """Redis client for best-effort publishing; None when not connected."""
    return redis_client
