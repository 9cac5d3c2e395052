"""
API Routes
==========

Route modules for the supplier pricing service.
"""

from supplier_pricing.api.routes.data import router as data_router
from supplier_pricing.api.routes.history import router as history_router

__all__ = ["data_router", "history_router"]
