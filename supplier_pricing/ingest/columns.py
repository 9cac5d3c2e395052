"""
Column Definitions
==================

Expected header names for the two upload types and header-row matching.

Matching ignores case and all whitespace, so "Штрих код" and "Штрихкод"
are the same column, as are "Item code" and "ITEMCODE".
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from supplier_pricing.utils.errors import MissingHeaderError
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_header(value: Any) -> str:
    """Strip all whitespace and lower-case a header cell."""
    if value is None:
        return ""
    return _WHITESPACE.sub("", str(value)).lower()


@dataclass(frozen=True)
class ColumnSpec:
    """
    One required column.

    Attributes:
        field: Internal field name the column maps to
        label: Human-readable name used in error messages and exports
        aliases: Accepted header spellings (Russian originals and English)
    """

    field: str
    label: str
    aliases: tuple[str, ...]

    def matches(self, header_cell: Any) -> bool:
        normalized = normalize_header(header_cell)
        return bool(normalized) and any(
            normalized == normalize_header(alias) for alias in self.aliases
        )


SUPPLIER_NAME = ColumnSpec(
    field="supplier_name",
    label="Supplier name",
    aliases=("Наименование поставщика", "Supplier name", "Supplier"),
)
ITEM_CODE = ColumnSpec(
    field="item_code",
    label="Item code",
    aliases=("Штрих код", "Item code", "Barcode", "SKU"),
)
DISPLAY_NAME = ColumnSpec(
    field="display_name",
    label="Display name",
    aliases=("Наименование", "Display name", "Product name"),
)
PRICE_WITH_TAX = ColumnSpec(
    field="price_with_tax",
    label="Price with tax",
    aliases=("ПЦ с НДС опт", "Price with tax", "Price incl tax"),
)
QUANTITY = ColumnSpec(
    field="quantity",
    label="Quantity",
    aliases=("Количество", "Quantity", "Qty"),
)

INGESTION_COLUMNS: tuple[ColumnSpec, ...] = (
    SUPPLIER_NAME,
    ITEM_CODE,
    DISPLAY_NAME,
    PRICE_WITH_TAX,
)
PRICE_REQUEST_COLUMNS: tuple[ColumnSpec, ...] = (ITEM_CODE, QUANTITY)

INGESTION_PURPOSE = "supplier data upload"
PRICE_REQUEST_PURPOSE = "price analysis"


def resolve_columns(
    header_row: Sequence[Any],
    specs: Sequence[ColumnSpec],
    expected_for: str,
) -> dict[str, int]:
    """
    Map each required column to its zero-based index in the header row.

    The first matching header cell wins.

    Args:
        header_row: Cell values of row 0
        specs: Required columns
        expected_for: Upload purpose, used in the error message

    Returns:
        Dict of field name to column index

    Raises:
        MissingHeaderError: If any required column is absent
    """
    indices: dict[str, int] = {}
    for spec in specs:
        for index, cell in enumerate(header_row):
            if spec.matches(cell):
                indices[spec.field] = index
                break

    missing = [spec.label for spec in specs if spec.field not in indices]
    if missing:
        logger.warning("Required columns not found", missing=missing, expected_for=expected_for)
        raise MissingHeaderError(missing, expected_for)

    logger.debug("Columns detected", columns=indices)
    return indices
