"""
SQLAlchemy models for the report-history store.

The table is owned and written by the external report store. This service
only reads the columns the historical pattern analyzer needs.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class ReportHistory(Base):
    """
    One past strategy report and, once evaluated, its actual outcome.

    Outcome columns stay NULL until the report has been evaluated.
    """
    __tablename__ = "report_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    symbol_code = Column(String(20), nullable=False, index=True)
    investment_horizon = Column(String(10), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Indicator state at generation time
    price_at_generation = Column(Float, nullable=True)
    rsi_at_generation = Column(Float, nullable=True)
    macd = Column(Float, nullable=True)
    macd_signal = Column(Float, nullable=True)

    # Actual outcome (evaluated later)
    was_correct = Column(Boolean, nullable=True)
    was_direction_correct = Column(Boolean, nullable=True)
    price_change_percent = Column(Float, nullable=True)
    evaluated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_report_history_symbol_created", "symbol_code", "created_at"),
    )

    def __repr__(self):
        return f"<ReportHistory {self.symbol_code} rsi={self.rsi_at_generation} @ {self.created_at}>"
