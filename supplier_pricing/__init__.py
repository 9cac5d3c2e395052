"""
Supplier Pricing Service
========================

Supplier price list ingestion and best-price resolution for Marketbel.

Features:
- Bulk ingestion of supplier spreadsheets with in-file deduplication
- Batched upserts against the offer catalog
- Cheapest-offer resolution for item/quantity request files
- Audit trail and request history for every run

"""

__version__ = "1.0.0"
