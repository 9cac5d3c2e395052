"""
Database Package
================

ORM models, connection management and repositories.
"""

from supplier_pricing.db.connection import (
    DatabaseManager,
    close_database,
    get_session,
    health_check,
    init_database,
)

__all__ = [
    "DatabaseManager",
    "close_database",
    "get_session",
    "health_check",
    "init_database",
]
