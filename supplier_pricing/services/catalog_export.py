"""
Catalog Export
==============

Excel exports built with openpyxl:
- the full catalog, in the ingestion column layout so it can be uploaded again
- price resolution results, one row per requested item
- detailed resolution results listing every priced offer per item with its
  percentage above the best price
- request rows (item code, quantity) taken from a history entry, in the
  price request layout so they can be analyzed again
- an invoice: item, name, quantity, unit price and line total, plus a total row
"""

import io
from collections.abc import AsyncIterator, Iterable, Sequence
from decimal import Decimal
from typing import Any

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.styles import Font

from supplier_pricing.db.models import ProductOffer
from supplier_pricing.ingest.columns import INGESTION_COLUMNS, PRICE_REQUEST_COLUMNS
from supplier_pricing.schemas.domain import InvoiceLine, PriceQuery, PriceResolution
from supplier_pricing.services.price_resolver import NOT_FOUND_MESSAGE
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

MONEY_FORMAT = "#,##0.00"
PERCENT_FORMAT = '0.00"%"'

RESULT_HEADERS = (
    "Item code",
    "Quantity",
    "Display name",
    "Supplier",
    "Unit price",
    "Total price",
    "Requires manual processing",
    "Message",
)
DETAILED_HEADERS = (
    "Item code",
    "Quantity",
    "Display name",
    "Supplier",
    "Unit price",
    "Above best, %",
    "Total price",
    "Requires manual processing",
)
INVOICE_HEADERS = (
    "Item code",
    "Display name",
    "Quantity",
    "Unit price",
    "Total price",
)
INVOICE_TOTAL_LABEL = "Total"


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def _money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _save(workbook: Workbook) -> bytes:
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _header_cells(sheet: Any, titles: Iterable[str]) -> list[WriteOnlyCell]:
    cells = []
    for title in titles:
        cell = WriteOnlyCell(sheet, value=title)
        cell.font = Font(bold=True)
        cells.append(cell)
    return cells


def _number_cell(sheet: Any, value: float | None, number_format: str) -> WriteOnlyCell:
    cell = WriteOnlyCell(sheet, value=value)
    cell.number_format = number_format
    return cell


async def export_catalog(pages: AsyncIterator[list[ProductOffer]]) -> bytes:
    """
    Write the whole catalog to a workbook, one page of offers at a time.

    Args:
        pages: Pages of offers, e.g. ProductOfferRepository.iter_all()

    Returns:
        xlsx file bytes
    """
    workbook = Workbook(write_only=True)
    sheet = workbook.create_sheet("Catalog")
    sheet.append([column.label for column in INGESTION_COLUMNS])

    rows = 0
    async for page in pages:
        for offer in page:
            sheet.append(
                [
                    offer.supplier_name,
                    offer.item_code,
                    offer.display_name or "",
                    _money(offer.price_with_tax) or 0.0,
                ]
            )
        rows += len(page)

    logger.info("Catalog exported", rows=rows)
    return _save(workbook)


def export_results(results: Sequence[PriceResolution]) -> bytes:
    """Write price resolution results, one row per requested item."""
    workbook = Workbook(write_only=True)
    sheet = workbook.create_sheet("Price analysis")
    sheet.append(list(RESULT_HEADERS))

    for result in results:
        sheet.append(
            [
                result.item_code,
                result.quantity,
                result.display_name or "",
                result.supplier_name or "",
                _money(result.unit_price),
                _money(result.total_price),
                _yes_no(result.requires_manual_processing),
                result.message,
            ]
        )

    return _save(workbook)


def export_supplier_results(
    results: Sequence[PriceResolution],
    offers: Iterable[ProductOffer],
) -> bytes:
    """
    Write every priced offer for each resolved item, cheapest first.

    The first row of an item carries the quantity and total; the following
    rows list competing suppliers with how far above the best price they are.

    Args:
        results: Resolution results to expand
        offers: All offers for the item codes in results
    """
    by_code: dict[str, list[ProductOffer]] = {}
    for offer in offers:
        by_code.setdefault(offer.item_code, []).append(offer)

    workbook = Workbook(write_only=True)
    sheet = workbook.create_sheet("Detailed price analysis")

    sheet.append(_header_cells(sheet, DETAILED_HEADERS))

    for result in results:
        candidates = by_code.get(result.item_code, [])
        priced = sorted(
            (offer for offer in candidates if offer.price_with_tax is not None),
            key=lambda offer: (offer.price_with_tax, offer.supplier_name),
        )

        if result.requires_manual_processing or not priced:
            label = result.display_name or ("" if candidates else NOT_FOUND_MESSAGE)
            sheet.append(
                [result.item_code, result.quantity, label, "", None, None, None, _yes_no(True)]
            )
            continue

        best_price = priced[0].price_with_tax
        for position, offer in enumerate(priced):
            above_best = Decimal("0")
            if best_price:
                above_best = (offer.price_with_tax - best_price) / best_price * 100

            if position == 0:
                sheet.append(
                    [
                        result.item_code,
                        result.quantity,
                        result.display_name or offer.display_name or "",
                        offer.supplier_name,
                        _number_cell(sheet, float(offer.price_with_tax), MONEY_FORMAT),
                        _number_cell(sheet, 0.0, PERCENT_FORMAT),
                        _number_cell(sheet, float(offer.price_with_tax * result.quantity), MONEY_FORMAT),
                        _yes_no(False),
                    ]
                )
            else:
                sheet.append(
                    [
                        "",
                        None,
                        "",
                        offer.supplier_name,
                        _number_cell(sheet, float(offer.price_with_tax), MONEY_FORMAT),
                        _number_cell(sheet, round(float(above_best), 2), PERCENT_FORMAT),
                        None,
                        "",
                    ]
                )

    return _save(workbook)


def export_request_rows(queries: Sequence[PriceQuery]) -> bytes:
    """Write item code and quantity rows under the price request headers."""
    workbook = Workbook(write_only=True)
    sheet = workbook.create_sheet("Price request")
    sheet.append([column.label for column in PRICE_REQUEST_COLUMNS])

    for query in queries:
        sheet.append([query.item_code, query.quantity])

    return _save(workbook)


def export_invoice(lines: Sequence[InvoiceLine]) -> bytes:
    """
    Write an invoice sheet.

    Missing prices are written as 0.00. The last row sums the line totals.
    """
    workbook = Workbook(write_only=True)
    sheet = workbook.create_sheet("Invoice")
    sheet.append(_header_cells(sheet, INVOICE_HEADERS))

    total = Decimal("0.00")
    for line in lines:
        unit_price = line.unit_price or Decimal("0.00")
        line_total = line.total_price or Decimal("0.00")
        total += line_total
        sheet.append(
            [
                line.item_code,
                line.display_name or "",
                line.quantity,
                _number_cell(sheet, float(unit_price), MONEY_FORMAT),
                _number_cell(sheet, float(line_total), MONEY_FORMAT),
            ]
        )

    label = WriteOnlyCell(sheet, value=INVOICE_TOTAL_LABEL)
    label.font = Font(bold=True)
    sheet.append([label, "", None, None, _number_cell(sheet, float(total), MONEY_FORMAT)])

    logger.info("Invoice exported", lines=len(lines), total=str(total))
    return _save(workbook)
