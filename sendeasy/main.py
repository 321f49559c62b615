import asyncio
import logging
import sys
import uuid
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from sendeasy.api import files, sessions, transfers
from sendeasy.api.dependencies import run_sweep_once
from sendeasy.core.config import settings
from sendeasy.core.exceptions import SendEasyError, StorageFailure
from sendeasy.core.limiter import limiter
from sendeasy.core.utils.database_helpers import check_database_health
from sendeasy.core.utils.logging_config import init_application_logging, set_correlation_id
from sendeasy.db.init_db import init_database
from sendeasy.services.sweeper import sweep_periodically

# Initialize structured logging
init_application_logging()

logger = logging.getLogger("sendeasy.main")

CORRELATION_HEADER = "X-Correlation-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_database()

    sweeper_task = None
    if settings.sweep_interval_minutes > 0:
        sweeper_task = asyncio.create_task(
            sweep_periodically(run_sweep_once, settings.sweep_interval_minutes * 60)
        )
        logger.info(
            "Expiration sweeper started",
            extra={"interval_minutes": settings.sweep_interval_minutes},
        )

    yield

    if sweeper_task is not None:
        sweeper_task.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper_task
        logger.info("Expiration sweeper stopped")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Password-gated ephemeral sharing of text and files between devices",
    version=settings.version,
    lifespan=lifespan,
)

# Attach limiter to app.state for access in route decorators
app.state.limiter = limiter

# Consistent HTTP 429 responses with Retry-After headers
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

logger.info(
    "Rate limiting initialized with configuration: validate=%s, write=%s, read=%s",
    settings.rate_limit_validate_endpoints,
    settings.rate_limit_write_endpoints,
    settings.rate_limit_read_endpoints,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
    set_correlation_id(correlation_id)
    try:
        response = await call_next(request)
    finally:
        set_correlation_id(None)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


@app.exception_handler(SendEasyError)
async def sendeasy_error_handler(request: Request, exc: SendEasyError) -> JSONResponse:
    if isinstance(exc, StorageFailure):
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(
            f"Request rejected on {request.method} {request.url.path}",
            extra={"error_type": type(exc).__name__, "status_code": exc.status_code},
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(sessions.router, prefix="/api/sessions", tags=["Sessions"])
app.include_router(transfers.router, prefix="/api/transfers", tags=["Transfers"])
app.include_router(files.router, prefix="/api/files", tags=["Files"])


def _check_storage_health() -> dict:
    """
    Check the health of the rate limiting storage backend.

    Returns dict with storage health status and details.
    """
    if not settings.redis_url:
        return {
            "type": "memory",
            "healthy": True,
            "message": "In-memory storage active",
        }

    try:
        limiter._storage.check()
        return {
            "type": "redis",
            "healthy": True,
            "message": "Redis connection successful",
        }
    except Exception as e:
        logger.warning("Redis health check failed: %s", str(e))
        return {
            "type": "redis",
            "healthy": False,
            "message": f"Redis connection failed: {str(e)}",
        }


def _check_upload_storage() -> dict:
    """Check that the upload directory is writable (local backend only)."""
    if settings.storage_backend != "local":
        return {"status": "healthy", "backend": settings.storage_backend, "bucket": settings.s3_bucket}

    try:
        upload_dir = Path(settings.upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        test_file = upload_dir / ".health_check"
        test_file.write_text("ok")
        test_file.unlink()
        return {"status": "healthy", "backend": "local", "upload_directory_writable": True}
    except OSError as e:
        logger.error(f"Upload directory health check failed: {e}")
        return {
            "status": "unhealthy",
            "backend": "local",
            "upload_directory_writable": False,
            "error": str(e),
        }


# Health check endpoints
@app.get("/health")
def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy"}


@app.get("/api/health")
def api_health_check(response: Response):
    """
    Enhanced health check endpoint.

    Reports database connectivity, upload storage, rate limiting and the
    configured lifetimes. Answers 503 when a required service is down.
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "version": settings.version,
        "environment": {
            "dev_mode": settings.dev_mode,
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        },
        "lifecycle": {
            "password_policy": settings.password_policy,
            "session_ttl_hours": settings.session_ttl_hours,
            "transfer_ttl_hours": settings.transfer_ttl_hours,
            "expired_grace_hours": settings.expired_grace_hours,
            "sweep_interval_minutes": settings.sweep_interval_minutes,
        },
        "services": {},
    }

    try:
        db_health = check_database_health()
        health_status["services"]["database"] = {
            "status": db_health["status"],
            "type": db_health["database_type"],
            "connected": db_health["connected"],
            "table_count": db_health["table_count"],
            "last_error": db_health.get("last_error"),
        }
        if db_health["status"] == "unhealthy":
            health_status["status"] = "unhealthy"
        elif db_health["status"] != "healthy":
            health_status["status"] = "degraded"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["services"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    file_health = _check_upload_storage()
    health_status["services"]["file_storage"] = file_health
    if file_health["status"] != "healthy":
        health_status["status"] = "unhealthy"

    storage_health = _check_storage_health()
    rate_limit_status = "enabled" if storage_health["healthy"] else "degraded"
    if not storage_health["healthy"] and health_status["status"] == "healthy":
        health_status["status"] = "degraded"

    health_status["services"]["rate_limiting"] = {
        "status": rate_limit_status,
        "storage": storage_health,
        "configuration": {
            "validate_endpoints": settings.rate_limit_validate_endpoints,
            "write_endpoints": settings.rate_limit_write_endpoints,
            "read_endpoints": settings.rate_limit_read_endpoints,
        },
    }

    if health_status["status"] == "unhealthy":
        response.status_code = 503
    return health_status
