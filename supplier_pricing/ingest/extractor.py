"""
Row Extraction
==============

Turns sheet rows into domain records for both upload types.
"""

from decimal import Decimal

from supplier_pricing.db.models import ProductOffer, Supplier
from supplier_pricing.ingest.columns import (
    DISPLAY_NAME,
    ITEM_CODE,
    PRICE_WITH_TAX,
    QUANTITY,
    SUPPLIER_NAME,
)
from supplier_pricing.ingest.spreadsheet import (
    SheetRow,
    TableSource,
    cell_price,
    cell_quantity,
    cell_text,
    to_json_value,
)
from supplier_pricing.schemas.domain import OfferRow, PriceQuery
from supplier_pricing.utils.errors import RowError

# Column limits of the catalog tables.
SUPPLIER_NAME_MAX_LENGTH: int = Supplier.__table__.c.name.type.length
ITEM_CODE_MAX_LENGTH: int = ProductOffer.__table__.c.item_code.type.length
DISPLAY_NAME_MAX_LENGTH: int = ProductOffer.__table__.c.display_name.type.length
_PRICE_TYPE = ProductOffer.__table__.c.price_with_tax.type
PRICE_LIMIT = Decimal(10) ** (_PRICE_TYPE.precision - _PRICE_TYPE.scale)


def _check_length(value: str | None, limit: int, label: str, row: SheetRow) -> None:
    if value is not None and len(value) > limit:
        raise RowError(
            f"{label} exceeds {limit} characters",
            details={"row": row.index, "length": len(value)},
        )


def scan_supplier_names(table: TableSource, columns: dict[str, int]) -> set[str]:
    """
    Collect the distinct non-blank supplier names of an ingestion file.

    Args:
        table: Open ingestion table
        columns: Resolved column indices

    Returns:
        Set of trimmed supplier names that fit the suppliers table
    """
    supplier_col = columns[SUPPLIER_NAME.field]
    names: set[str] = set()
    for row in table.iter_rows():
        name = cell_text(row.get(supplier_col))
        if name and len(name) <= SUPPLIER_NAME_MAX_LENGTH:
            names.add(name)
    return names


def read_offer_row(row: SheetRow, columns: dict[str, int]) -> OfferRow:
    """
    Extract one ingestion row.

    Raises:
        RowError: If the supplier name or item code is blank, a text value
            is longer than its column or the price does not fit Numeric(14, 2)
    """
    supplier_name = cell_text(row.get(columns[SUPPLIER_NAME.field]))
    item_code = cell_text(row.get(columns[ITEM_CODE.field]))
    if not supplier_name or not item_code:
        raise RowError(
            "Supplier name and item code are required",
            details={"row": row.index},
        )

    display_name = cell_text(row.get(columns[DISPLAY_NAME.field]))
    _check_length(supplier_name, SUPPLIER_NAME_MAX_LENGTH, "Supplier name", row)
    _check_length(item_code, ITEM_CODE_MAX_LENGTH, "Item code", row)
    _check_length(display_name, DISPLAY_NAME_MAX_LENGTH, "Display name", row)

    price_with_tax = cell_price(row.get(columns[PRICE_WITH_TAX.field]))
    if abs(price_with_tax) >= PRICE_LIMIT:
        raise RowError(
            "Price with tax is out of range",
            details={"row": row.index, "price": str(price_with_tax)},
        )

    return OfferRow(
        row_index=row.index,
        supplier_name=supplier_name,
        item_code=item_code,
        display_name=display_name,
        price_with_tax=price_with_tax,
    )


def read_price_query(row: SheetRow, columns: dict[str, int]) -> PriceQuery | None:
    """Extract one price request row, or None for a blank code or quantity <= 0."""
    item_code = cell_text(row.get(columns[ITEM_CODE.field]))
    quantity = cell_quantity(row.get(columns[QUANTITY.field]))
    if not item_code or quantity <= 0:
        return None
    return PriceQuery(item_code=item_code, quantity=quantity)


def raw_row(row: SheetRow) -> dict[str, object]:
    """Row cells keyed "column_<j>", kept verbatim for the history trail."""
    return {f"column_{j}": to_json_value(value) for j, value in enumerate(row.values)}
