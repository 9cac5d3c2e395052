"""
Repositories
============

Data access layer for catalog, audit, history and subscription tables.
"""

from supplier_pricing.db.repositories.audit_repo import AuditRepository
from supplier_pricing.db.repositories.history_repo import HistoryRepository
from supplier_pricing.db.repositories.offers_repo import ProductOfferRepository
from supplier_pricing.db.repositories.subscriptions_repo import SubscriptionRepository
from supplier_pricing.db.repositories.suppliers_repo import SupplierRepository

__all__ = [
    "AuditRepository",
    "HistoryRepository",
    "ProductOfferRepository",
    "SubscriptionRepository",
    "SupplierRepository",
]
