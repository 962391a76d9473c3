"""
Database Module.

SQLAlchemy tables, engine setup and the repositories built on them.
"""

from classgrade.db.grading import GradingContext, GradingRepository, SubmissionRef
from classgrade.db.platform import PlatformRepository
from classgrade.db.session import (
    create_db_engine,
    create_session_factory,
    init_db,
    session_factory_from_settings,
)
from classgrade.db.tables import Base

__all__ = [
    "Base",
    "GradingContext",
    "GradingRepository",
    "PlatformRepository",
    "SubmissionRef",
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "session_factory_from_settings",
]
