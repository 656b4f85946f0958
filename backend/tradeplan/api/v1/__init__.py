"""
API v1 Router

Strategy generation and monitoring endpoints.
"""

from fastapi import APIRouter

from tradeplan.api.v1.endpoints import metrics, strategy

router = APIRouter()

# Include all endpoint routers
router.include_router(strategy.router, prefix="/strategy", tags=["Strategy"])
router.include_router(metrics.router, prefix="/metrics", tags=["Monitoring"])
