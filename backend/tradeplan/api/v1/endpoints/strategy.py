"""
Strategy API Endpoints

Main endpoint for strategy reports.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from tradeplan.schemas.report import StrategyReport, StrategyRequest
from tradeplan.services.report import ReportService, get_report_service
from tradeplan.services.strategy.tiers import AIStrategyTier

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate", response_model=StrategyReport)
async def generate_strategy(
    request: StrategyRequest,
    service: ReportService = Depends(get_report_service),
):
    """
    Generate a three-phase strategy report for one symbol.

    Tiers run in order (AI if configured, rule-based, fallback); the first
    success is returned. A report is produced even without an LLM key.
    """
    try:
        return await service.execute(request)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Strategy generation failed for {request.symbol.code}")
        raise HTTPException(status_code=500, detail=f"Strategy generation failed: {str(e)}")


@router.get("/health")
async def strategy_health(service: ReportService = Depends(get_report_service)):
    """Check which strategy tiers are available."""
    tiers = service.generator.tiers
    ai_provider = next(
        (t.provider for t in tiers if isinstance(t, AIStrategyTier) and t.provider),
        None,
    )
    return {
        "healthy": await service.health_check(),
        "ai_available": ai_provider is not None,
        "ai_provider": ai_provider.value if ai_provider else None,
        "tiers": [
            {"source": t.source.value, "available": t.is_available()} for t in tiers
        ],
    }
