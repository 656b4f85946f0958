"""
TradePlan Backend - FastAPI Application

Main entry point for the backend API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tradeplan.core.config import get_settings, get_strategy_config
from tradeplan.api.v1 import router as api_v1_router

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup: fail fast on bad configuration
    config = get_strategy_config()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(
        f"LLM provider: {config.llm.provider} ({config.llm.model}), "
        f"credential {'set' if config.llm.api_key else 'missing - rule-based only'}"
    )
    if config.history.database_url:
        logger.info("Report history store configured")
    else:
        logger.info("No report history store configured - historical context disabled")

    yield

    # Shutdown
    logger.info("Shutting down...")
    from tradeplan.db.database import close_db
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    TradePlan Strategy Generation API

    ## Architecture
    - **Target Calculator**: Deterministic target / stop-loss prices per horizon
    - **Strategy Generator**: AI tier, then rule-based tier, then fallback tier
    - **Validator**: Schema validation with one auto-repair pass
    - **Confidence Scorer**: Weighted signal confidence with breakdown
    - **Monitoring**: Per-source success rates, token usage and cost

    ## Core Principles
    - Always returns a plan, even without an LLM
    - LLM does no math; every price is precomputed
    - Honest confidence, reduced for repaired or rule-based plans
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "TradePlan Backend API",
        "docs": "/docs",
        "health": "/health",
    }
