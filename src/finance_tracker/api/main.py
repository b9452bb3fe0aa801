"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from finance_tracker.core.config import settings
from finance_tracker.api.routes import investments, market
from finance_tracker.db.session import AsyncSessionLocal
from finance_tracker.services.price_cache import get_price_cache

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for startup and shutdown events."""
    # Startup
    logger.info("Starting Finance Tracker API...")
    logger.info(f"Environment: {'Development' if settings.debug else 'Production'}")
    logger.info(f"Price cache freshness window: {settings.price_cache_ttl_seconds}s")
    yield
    # Shutdown
    logger.info("Shutting down Finance Tracker API...")


# Create FastAPI app
app = FastAPI(
    title="Finance Tracker API",
    description="Investments, live prices and portfolio valuation",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

if settings.otel_enabled:
    from finance_tracker.core.telemetry import configure_telemetry, instrument_app

    configure_telemetry()
    instrument_app(app)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    from fastapi.responses import JSONResponse
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {str(exc)}"}
    )

# Include routers
app.include_router(investments.router)
app.include_router(market.router)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic service info."""
    return {
        "status": "healthy",
        "service": "Finance Tracker API",
        "version": "0.1.0"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Comprehensive health check endpoint.

    Verifies:
    - Database connectivity (executes SELECT 1)
    - Quote provider chain and price cache size

    Returns 200 if all systems operational, 503 if the database is unavailable.
    Quote providers are reported but never fail the check, since valuations
    fall back to average cost without them.
    """
    health_status = {
        "status": "healthy",
        "service": "Finance Tracker API",
        "version": "0.1.0",
        "checks": {}
    }

    # Check database connectivity
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = {
                "status": "healthy",
                "message": "Connected"
            }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Connection failed: {str(e)}"
        }

    price_cache = get_price_cache()
    health_status["checks"]["quotes"] = {
        "status": "configured",
        "providers": [provider.name for provider in price_cache.providers],
        "cached_symbols": price_cache.stats().cached_symbols
    }

    from fastapi import status
    from fastapi.responses import JSONResponse

    status_code = status.HTTP_200_OK if health_status["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(content=health_status, status_code=status_code)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "finance_tracker.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower()
    )
