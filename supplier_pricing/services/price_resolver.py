"""
Price Resolver
==============

Finds the cheapest supplier offer for each requested (item code, quantity).

All competing offers for the requested codes are fetched in one query and
reduced to the minimum in memory. Among equal lowest prices the supplier
whose name sorts first wins.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from supplier_pricing.db.models import ProductOffer
from supplier_pricing.ingest.columns import (
    PRICE_REQUEST_COLUMNS,
    PRICE_REQUEST_PURPOSE,
    resolve_columns,
)
from supplier_pricing.ingest.extractor import raw_row, read_price_query
from supplier_pricing.ingest.spreadsheet import PRICE_QUANTUM, TableSource
from supplier_pricing.schemas.domain import PriceQuery, PriceQueryBatch, PriceResolution
from supplier_pricing.services.catalog_store import CatalogStore
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "Item not found in catalog"
NO_PRICE_MESSAGE = "No priced offer found for item"


def extract_price_queries(table: TableSource) -> PriceQueryBatch:
    """
    Read a price request upload.

    Rows with a blank item code or a quantity <= 0 are dropped. Every
    non-empty data row, valid or not, is kept in raw_rows.

    Raises:
        MissingHeaderError: If the item code or quantity column is absent
    """
    columns = resolve_columns(table.header(), PRICE_REQUEST_COLUMNS, PRICE_REQUEST_PURPOSE)
    batch = PriceQueryBatch()

    for row in table.iter_rows():
        batch.raw_rows.append(raw_row(row))
        query = read_price_query(row, columns)
        if query is None:
            batch.dropped += 1
            continue
        batch.queries.append(query)

    logger.info(
        "Price request parsed",
        file=table.filename,
        queries=len(batch.queries),
        dropped=batch.dropped,
    )
    return batch


def _sort_key(offer: ProductOffer) -> tuple[Decimal, str]:
    return (offer.price_with_tax, offer.supplier_name)


def best_offers(offers: Iterable[ProductOffer]) -> dict[str, ProductOffer]:
    """
    Reduce offers to the cheapest priced one per item code.

    Offers without a price never win. Input order is irrelevant.
    """
    best: dict[str, ProductOffer] = {}
    for offer in offers:
        if offer.price_with_tax is None:
            continue
        current = best.get(offer.item_code)
        if current is None or _sort_key(offer) < _sort_key(current):
            best[offer.item_code] = offer
    return best


def _found(query: PriceQuery, offer: ProductOffer) -> PriceResolution:
    unit_price = offer.price_with_tax
    return PriceResolution(
        item_code=query.item_code,
        quantity=query.quantity,
        requires_manual_processing=False,
        message=f"Supplier {offer.supplier_name} at {unit_price:.2f} per unit",
        supplier_name=offer.supplier_name,
        display_name=offer.display_name,
        unit_price=unit_price,
        total_price=(unit_price * query.quantity).quantize(PRICE_QUANTUM),
    )


def _manual(query: PriceQuery, message: str) -> PriceResolution:
    return PriceResolution(
        item_code=query.item_code,
        quantity=query.quantity,
        requires_manual_processing=True,
        message=message,
    )


async def resolve(store: CatalogStore, queries: Sequence[PriceQuery]) -> list[PriceResolution]:
    """
    Resolve every query against the catalog.

    Args:
        store: Catalog store
        queries: Valid queries in input order

    Returns:
        One PriceResolution per query, in input order. Repeated item codes
        share the chosen offer and keep their own quantity.
    """
    if not queries:
        return []

    item_codes = sorted({query.item_code for query in queries})
    offers = await store.offers_for_item_codes(item_codes)
    known_codes = {offer.item_code for offer in offers}
    best = best_offers(offers)

    results: list[PriceResolution] = []
    for query in queries:
        offer = best.get(query.item_code)
        if offer is not None:
            results.append(_found(query, offer))
        elif query.item_code in known_codes:
            results.append(_manual(query, NO_PRICE_MESSAGE))
        else:
            results.append(_manual(query, NOT_FOUND_MESSAGE))

    manual = sum(1 for result in results if result.requires_manual_processing)
    logger.info(
        "Price resolution finished",
        queries=len(queries),
        distinct_items=len(item_codes),
        offers_fetched=len(offers),
        manual=manual,
    )
    return results
