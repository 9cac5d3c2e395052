"""
Schemas
=======

Domain dataclasses and API response models.
"""

from supplier_pricing.schemas.domain import (
    IngestionSummary,
    InvoiceLine,
    OfferRow,
    PriceQuery,
    PriceQueryBatch,
    PriceResolution,
    RowOutcome,
)
from supplier_pricing.schemas.responses import (
    CatalogOffer,
    CatalogPage,
    ExportInvoiceRequest,
    ExportRequestRowsRequest,
    ExportResultsRequest,
    HistoryEntryResponse,
    IngestionSummaryResponse,
    InvoiceItem,
    JobAcceptedResponse,
    JobStatusResponse,
    PriceResolutionResponse,
    RequestRow,
)

__all__ = [
    "CatalogOffer",
    "CatalogPage",
    "ExportInvoiceRequest",
    "ExportRequestRowsRequest",
    "ExportResultsRequest",
    "HistoryEntryResponse",
    "IngestionSummary",
    "IngestionSummaryResponse",
    "InvoiceItem",
    "InvoiceLine",
    "JobAcceptedResponse",
    "JobStatusResponse",
    "OfferRow",
    "PriceQuery",
    "PriceQueryBatch",
    "PriceResolution",
    "PriceResolutionResponse",
    "RequestRow",
    "RowOutcome",
]
