"""HomeXpert Backend API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config import get_settings
from .errors import register_error_handlers
from .logging_config import configure_logging, get_logger
from .rate_limit import limiter
from .routes import hire_contracts_router, hire_requests_router, shortlists_router

logger = get_logger("homexpert.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    configure_logging(settings.debug)
    logger.info(f"Starting HomeXpert Backend API (debug={settings.debug})")
    yield
    logger.info("Shutting down HomeXpert Backend API")


app = FastAPI(
    title="HomeXpert Backend API",
    description="Shortlists, hire requests and contracts between households and househelps",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Engagement errors -> HTTP
register_error_handlers(app)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(shortlists_router)
app.include_router(hire_requests_router)
app.include_router(hire_contracts_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "service": "homexpert-backend",
        "version": "0.1.0",
        "status": "ok",
    }


@app.get("/health")
def health():
    """Health check that exercises the engagement store."""
    from .database import get_engagement

    try:
        engagement = get_engagement()
        engagement.ledger.list_entries("health-check", limit=1)
        db_status = "connected"
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        db_status = f"error: {str(e)[:50]}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
    }
