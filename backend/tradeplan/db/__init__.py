"""
Database module for the report-history store.

Provides async SQLAlchemy sessions and the read-only ReportHistory model.
"""

from tradeplan.db.database import (
    close_db,
    create_engine_for,
    create_session_factory,
    init_db,
    open_history_db,
)
from tradeplan.db.models import Base, ReportHistory
from tradeplan.db.repository import SqlReportHistorySource

__all__ = [
    "close_db",
    "create_engine_for",
    "create_session_factory",
    "init_db",
    "open_history_db",
    "Base",
    "ReportHistory",
    "SqlReportHistorySource",
]
