"""
Spreadsheet Ingest
==================

Table readers, header matching and row extraction for uploaded files.
"""

from supplier_pricing.ingest.columns import (
    INGESTION_COLUMNS,
    INGESTION_PURPOSE,
    PRICE_REQUEST_COLUMNS,
    PRICE_REQUEST_PURPOSE,
    ColumnSpec,
    resolve_columns,
)
from supplier_pricing.ingest.spreadsheet import (
    SUPPORTED_EXTENSIONS,
    SheetRow,
    TableSource,
    open_table,
)

__all__ = [
    "INGESTION_COLUMNS",
    "INGESTION_PURPOSE",
    "PRICE_REQUEST_COLUMNS",
    "PRICE_REQUEST_PURPOSE",
    "SUPPORTED_EXTENSIONS",
    "ColumnSpec",
    "SheetRow",
    "TableSource",
    "open_table",
    "resolve_columns",
]
