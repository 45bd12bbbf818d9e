"""CloudOps Cost Optimizer - Main Application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cloudops.api.routes import (
    actions_router,
    analytics_router,
    recommendations_router,
    savings_router,
)
from cloudops.core.config import get_settings
from cloudops.core.database import SessionLocal, check_database, init_db
from cloudops.core.exceptions import CloudOpsError
from cloudops.core.scheduler import get_scheduler, init_scheduler

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting CloudOps Cost Optimizer...")

    # Initialize database
    init_db()
    logger.info("Database initialized")

    # Initialize and start scheduler
    scheduler = None
    if settings.scheduler_enabled:
        scheduler = init_scheduler()
        scheduler.start()
        logger.info(
            f"Background scheduler started for {len(settings.monitored_user_ids)} monitored user(s)"
        )
    else:
        logger.info("Background scheduler disabled")

    yield

    # Shutdown
    logger.info("Shutting down...")
    if scheduler:
        scheduler.shutdown()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Cloud cost optimizer: rule-based savings recommendations, "
                "verified implementation tracking, and metric history.",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(recommendations_router)
app.include_router(actions_router)
app.include_router(savings_router)
app.include_router(analytics_router)


def error_envelope(status_code: int, message: str, error: str) -> JSONResponse:
    """Build the ``{"success": false, ...}`` failure response."""
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": error},
    )


@app.exception_handler(CloudOpsError)
async def cloudops_exception_handler(request: Request, exc: CloudOpsError):
    """Convert service errors into the failure envelope."""
    if exc.status_code >= 500:
        logger.error(f"{exc.message} on {request.url.path}: {exc.error}")
    else:
        logger.info(f"{exc.message} on {request.url.path}: {exc.error}")
    return error_envelope(exc.status_code, exc.message, exc.error)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report invalid or missing request parameters as 400."""
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return error_envelope(status.HTTP_400_BAD_REQUEST, "Invalid request", details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_envelope(exc.status_code, "Request failed", str(exc.detail))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return error_envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        str(exc) if settings.debug else "An unexpected error occurred",
    )


@app.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"success": True, "status": "healthy", "version": settings.app_version}


@app.get("/health/detailed")
async def detailed_health_check():
    """Detailed health check with component status."""
    components = {
        "database": "unknown",
        "scheduler": "unknown",
    }

    # Check database
    db = SessionLocal()
    try:
        check_database(db)
        components["database"] = "healthy"
    except Exception as e:
        components["database"] = f"unhealthy: {str(e)}"
    finally:
        db.close()

    # Check scheduler
    scheduler = get_scheduler()
    if scheduler and scheduler.running:
        components["scheduler"] = "running"
    elif settings.scheduler_enabled:
        components["scheduler"] = "not_running"
    else:
        components["scheduler"] = "disabled"

    degraded = components["database"] != "healthy" or components["scheduler"] == "not_running"
    return {
        "success": True,
        "status": "degraded" if degraded else "healthy",
        "version": settings.app_version,
        "components": components,
    }


def main() -> None:
    import uvicorn

    uvicorn.run(
        "cloudops.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
