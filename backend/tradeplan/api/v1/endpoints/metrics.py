"""
Monitoring API Endpoints

Strategy-generation performance metrics.
"""

from fastapi import APIRouter, Depends

from tradeplan.schemas.metrics import CostEstimate, PerformanceMetrics
from tradeplan.services.monitoring import MonitoringService, get_monitoring_service

router = APIRouter()


@router.get("", response_model=PerformanceMetrics)
async def get_metrics(monitoring: MonitoringService = Depends(get_monitoring_service)):
    """Current per-source, token and validation counters."""
    return monitoring.get_metrics()


@router.post("/reset")
async def reset_metrics(monitoring: MonitoringService = Depends(get_monitoring_service)):
    """Reset all counters."""
    monitoring.reset_metrics()
    return {"reset": True}


@router.get("/cost", response_model=CostEstimate)
async def get_cost(monitoring: MonitoringService = Depends(get_monitoring_service)):
    """Estimated LLM spend from cumulative token usage."""
    return monitoring.calculate_cost()
