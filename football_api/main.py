"""
Main FastAPI application for the Football Data API.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.orm import Session

# Load environment variables from .env file
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from football_api.core.config import settings
from football_api.core.database import get_db, init_db
from football_api.core.errors import register_exception_handlers
from football_api.core.logging import configure_logging, get_logger
from football_api.core.middleware import CorrelationIdMiddleware
from football_api.core.rate_limit import limiter
from football_api.core.scheduler import get_scheduler, start_scheduler, stop_scheduler
from football_api.api.routes import leagues, matches, sync, teams

# Configure structured logging (JSON in deployments, colored for local work)
configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} ({settings.ENVIRONMENT})")

    init_db()

    if settings.SCHEDULER_ENABLED:
        await start_scheduler()
        logger.info("Sync scheduler started")
    else:
        logger.info("Sync scheduler disabled (SCHEDULER_ENABLED=false)")

    logger.info("Application started")

    yield

    # Shutdown
    await stop_scheduler()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Football leagues, teams, players and matches synchronized from an external football data provider",
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

# Add correlation ID middleware (must be added before CORS for proper header handling)
app.add_middleware(CorrelationIdMiddleware)

# Initialize Prometheus metrics BEFORE including routes
instrumentator = Instrumentator()
instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API v1 - all routes use the /api/v1/ prefix for versioning
app.include_router(leagues.router, prefix="/api/v1")
app.include_router(teams.router, prefix="/api/v1")
app.include_router(matches.router, prefix="/api/v1")
app.include_router(sync.router, prefix="/api/v1")


@app.get("/")
@limiter.limit("60/minute")
async def root(request: Request):
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "endpoints": {
            "api_version": "v1",
            "sync": {
                "leagues": "/api/v1/leagues/sync",
                "teams": "/api/v1/teams/sync/{league_id}",
                "matches": "/api/v1/matches/sync/{league_id}",
                "status": "/api/v1/sync/status",
            },
            "docs": "/docs",
            "health": "/health",
            "metrics": "/metrics",
        },
    }


@app.get("/health")
@limiter.limit("120/minute")  # Higher limit for health checks
async def health_check(request: Request, db: Session = Depends(get_db)):
    """Health check endpoint with database and scheduler status."""
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "components": {},
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["components"]["database"] = {"status": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["components"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "degraded"

    scheduler = get_scheduler()
    health_status["components"]["scheduler"] = {
        "status": "running" if scheduler and scheduler.running else "stopped",
    }

    return health_status


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "football_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
