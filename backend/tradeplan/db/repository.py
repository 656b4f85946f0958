"""
Read-only queries over the report-history table.
"""

import logging
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tradeplan.db.models import ReportHistory
from tradeplan.services.history import HistoricalOutcome

logger = logging.getLogger(__name__)


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class SqlReportHistorySource:
    """ReportHistorySource backed by the report_history table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def fetch_outcomes(
        self,
        symbol_code: str,
        rsi_min: float,
        rsi_max: float,
        since: datetime,
    ) -> Sequence[HistoricalOutcome]:
        stmt = (
            select(ReportHistory)
            .where(ReportHistory.symbol_code == symbol_code)
            .where(ReportHistory.rsi_at_generation >= rsi_min)
            .where(ReportHistory.rsi_at_generation <= rsi_max)
            .where(ReportHistory.was_correct.is_not(None))
            .where(ReportHistory.created_at >= _to_naive_utc(since))
        )

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.scalars().all()

        return [
            HistoricalOutcome(
                rsi=row.rsi_at_generation,
                macd=row.macd,
                macd_signal=row.macd_signal,
                was_direction_correct=bool(row.was_direction_correct),
                price_change_percent=row.price_change_percent,
                created_at=row.created_at,
            )
            for row in rows
        ]
