from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import redis.asyncio as redis
import os

from sqlalchemy import text

from quickhost_api import __version__, dependencies
from quickhost_api.logging_config import setup_logging, get_logger

logger = get_logger(__name__)
from quickhost_api.auth.middleware import AuthMiddleware
from quickhost_api.database import init_db_engine, close_db_engine, AsyncSessionLocal
from quickhost_api.migration_check import ensure_migrations
from quickhost_api.routers import auth as auth_router
from quickhost_api.routers import tables as tables_router
from quickhost_api.routers import rpc as rpc_router
from quickhost_api.routers import realtime as realtime_router
from quickhost_api.routers import public as public_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect/disconnect Redis and the database."""
    setup_logging()

    from quickhost_api.auth.config import auth_settings

    try:
        auth_settings.validate()
    except RuntimeError as e:
        logger.critical(f"Auth configuration error: {e}")
        raise

    redis_url = os.getenv("REDIS_URL", "redis://localhost:6379")
    dependencies.redis_client = redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_keepalive=True,
        retry_on_timeout=True,
        health_check_interval=30,
    )

    try:
        await dependencies.redis_client.ping()
        logger.info(f"Connected to Redis at {redis_url}")
    except Exception as e:
        logger.warning(f"Could not connect to Redis: {e}")
        logger.warning("Realtime subscriptions will be unavailable")

    try:
        await init_db_engine()
        logger.info("Database engine initialized")
    except Exception as e:
        logger.critical(f"Could not initialize database engine: {e}")
        raise

    try:
        ensure_migrations()
    except Exception as e:
        logger.critical(f"Migration check failed: {e}")
        raise

    yield

    try:
        await close_db_engine()
        logger.info("Database engine closed")
    except Exception as e:
        logger.error(f"Error closing database engine: {e}")

    if dependencies.redis_client:
        try:
            await dependencies.redis_client.aclose()
            logger.info("Disconnected from Redis")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")


app = FastAPI(
    title="QuickHost API",
    version=__version__,
    description="Backend platform for QuickHost static sites and Boongle Mail",
    lifespan=lifespan,
)

# CORS_ORIGINS: "*" (default) or a comma-separated origin list
_cors_origins_env = os.getenv("CORS_ORIGINS", "*").strip()
if _cors_origins_env == "*":
    _cors_origins = ["*"]
    _cors_credentials = False
else:
    _cors_origins = [o.strip() for o in _cors_origins_env.split(",") if o.strip()]
    _cors_credentials = True

# Added before CORS so CORS runs outermost and 401s still carry CORS headers
app.add_middleware(AuthMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=_cors_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions and return a JSON 500."""
    error_detail = str(exc)
    error_type = type(exc).__name__

    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {error_type}: {error_detail}",
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"{error_type}: {error_detail}",
            "type": error_type,
            "path": str(request.url.path),
        },
    )


app.include_router(auth_router.router, prefix="/v1/auth", tags=["auth"])
app.include_router(tables_router.router, prefix="/v1/tables", tags=["tables"])
app.include_router(rpc_router.router, prefix="/v1/rpc", tags=["rpc"])
app.include_router(realtime_router.router, prefix="/v1/realtime", tags=["realtime"])
app.include_router(public_router.router, prefix="/v1/public", tags=["public"])
app.include_router(public_router.preview_router, prefix="/read", tags=["preview"])


@app.get("/v1/status")
async def status():
    """Get API health status."""
    redis_ok = False
    if dependencies.redis_client:
        try:
            redis_ok = bool(await dependencies.redis_client.ping())
        except Exception as e:
            logger.debug(f"Redis ping failed: {e}")

    database_ok = False
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        database_ok = True
    except Exception as e:
        logger.warning(f"Database check failed: {e}")

    return {
        "status": "ok" if database_ok else "degraded",
        "version": __version__,
        "redis_connected": redis_ok,
        "database_connected": database_ok,
    }
