"""
Services
========

Ingestion, price resolution, audit and export services.
"""

from supplier_pricing.services.audit_sink import AuditSink
from supplier_pricing.services.catalog_cache import CatalogCache
from supplier_pricing.services.catalog_store import CatalogStore, SqlCatalogStore
from supplier_pricing.services.ingestion_engine import (
    IngestionEngine,
    OfferBatchBuffer,
    ingest_upload,
)
from supplier_pricing.services.price_resolver import extract_price_queries, resolve
from supplier_pricing.services.supplier_resolver import SupplierResolution, ensure_suppliers

__all__ = [
    "AuditSink",
    "CatalogCache",
    "CatalogStore",
    "IngestionEngine",
    "OfferBatchBuffer",
    "SqlCatalogStore",
    "SupplierResolution",
    "ensure_suppliers",
    "extract_price_queries",
    "ingest_upload",
    "resolve",
]
