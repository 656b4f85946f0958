"""
TradePlan Services

Service layer containing all business logic.
Each service has a defined contract and implementation.
"""

from tradeplan.services.base import BaseService, ServiceError

__all__ = ["BaseService", "ServiceError"]
