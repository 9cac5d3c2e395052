"""
Ingestion Engine
================

Bulk-ingests a supplier upload against the existing catalog.

Pipeline for one run:
1. Resolve the header row (aborts on missing columns)
2. Scan the distinct supplier names and create the missing suppliers
3. Preload the catalog cache for those suppliers in one query
4. Classify every row as new, updated, unchanged, duplicate or failed
5. Write new and changed offers in batches of INGESTION_BATCH_SIZE

No per-row database round trip happens anywhere in the loop.
"""

import time
from collections.abc import Iterable

from supplier_pricing.db.models import ProductOffer
from supplier_pricing.ingest.columns import INGESTION_COLUMNS, INGESTION_PURPOSE, resolve_columns
from supplier_pricing.ingest.extractor import read_offer_row, scan_supplier_names
from supplier_pricing.ingest.spreadsheet import SheetRow, TableSource, open_table
from supplier_pricing.schemas.domain import IngestionSummary, RowOutcome
from supplier_pricing.services.catalog_cache import CatalogCache, OfferKey
from supplier_pricing.services.catalog_store import CatalogStore
from supplier_pricing.services.supplier_resolver import ensure_suppliers
from supplier_pricing.utils.errors import DatabaseError, RowError
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BATCH_SIZE = 5000


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


class OfferBatchBuffer:
    """
    Collects staged offers and writes them once batch_size is reached.

    close() writes the remainder. A failed write raises DatabaseError;
    batches written before it stay committed.
    """

    def __init__(self, store: CatalogStore, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._store = store
        self._batch_size = batch_size
        self._pending: list[ProductOffer] = []
        self.batches_written = 0
        self.offers_written = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def stage(self, offer: ProductOffer) -> None:
        self._pending.append(offer)
        if len(self._pending) >= self._batch_size:
            await self.flush()

    async def flush(self) -> int:
        """Write all pending offers as one batch."""
        if not self._pending:
            return 0

        batch = self._pending
        self._pending = []
        try:
            written = await self._store.write_offers(batch)
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(
                "Failed to write offer batch",
                details={"batch_size": len(batch), "error": str(e)},
            ) from e

        self.batches_written += 1
        self.offers_written += written
        logger.debug("Offer batch flushed", batch=self.batches_written, size=len(batch))
        return written

    async def close(self) -> None:
        await self.flush()


class IngestionEngine:
    """
    Row state machine for one ingestion run.

    Within a file the first occurrence of (supplier, item code) wins; later
    occurrences are duplicates even if their price differs. An offer whose
    price and display name equal the cached values exactly is left alone.

    Usage:
        engine = IngestionEngine(SqlCatalogStore(session), batch_size=5000)
        summary = await engine.ingest(table)
    """

    def __init__(self, store: CatalogStore, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._store = store
        self._batch_size = batch_size

    async def ingest(self, table: TableSource) -> IngestionSummary:
        """
        Ingest one open table.

        Args:
            table: Ingestion upload

        Returns:
            IngestionSummary with per-outcome counts and elapsed time

        Raises:
            MissingHeaderError: If a required column is absent
            DatabaseError: If supplier creation or a batch write fails
        """
        started = time.perf_counter()
        columns = resolve_columns(table.header(), INGESTION_COLUMNS, INGESTION_PURPOSE)

        phase = time.perf_counter()
        supplier_names = scan_supplier_names(table, columns)
        logger.info(
            "Supplier scan finished",
            file=table.filename,
            suppliers=len(supplier_names),
            duration_ms=_elapsed_ms(phase),
        )

        phase = time.perf_counter()
        await ensure_suppliers(self._store, supplier_names)
        logger.info("Supplier resolution finished", duration_ms=_elapsed_ms(phase))

        phase = time.perf_counter()
        cache = await CatalogCache.load(self._store, supplier_names)
        logger.info("Cache load finished", offers=len(cache), duration_ms=_elapsed_ms(phase))

        phase = time.perf_counter()
        summary = await self._process_rows(table.iter_rows(), columns, cache)
        logger.info("Row processing finished", duration_ms=_elapsed_ms(phase))

        summary.elapsed_ms = _elapsed_ms(started)
        logger.info(
            "Ingestion run finished",
            file=table.filename,
            new=summary.new,
            updated=summary.updated,
            unchanged=summary.unchanged,
            duplicate=summary.duplicate,
            failed=summary.failed,
            elapsed_ms=summary.elapsed_ms,
        )
        return summary

    async def _process_rows(
        self,
        rows: Iterable[SheetRow],
        columns: dict[str, int],
        cache: CatalogCache,
    ) -> IngestionSummary:
        summary = IngestionSummary()
        buffer = OfferBatchBuffer(self._store, self._batch_size)
        seen: set[OfferKey] = set()

        for row in rows:
            try:
                outcome, offer = self._classify(row, columns, cache, seen)
            except RowError as e:
                logger.warning("Row skipped", row=row.index, reason=e.message)
                outcome, offer = RowOutcome.FAILED, None
            except Exception as e:
                logger.warning("Row processing failed", row=row.index, error=str(e))
                outcome, offer = RowOutcome.FAILED, None

            summary.record(outcome)
            if offer is not None:
                await buffer.stage(offer)

        await buffer.close()
        logger.debug(
            "Offer writes finished",
            batches=buffer.batches_written,
            offers=buffer.offers_written,
        )
        return summary

    def _classify(
        self,
        row: SheetRow,
        columns: dict[str, int],
        cache: CatalogCache,
        seen: set[OfferKey],
    ) -> tuple[RowOutcome, ProductOffer | None]:
        """Decide the row outcome and the offer to stage, if any."""
        offer_row = read_offer_row(row, columns)
        key = offer_row.key

        if key in seen:
            return RowOutcome.DUPLICATE, None
        seen.add(key)

        existing = cache.get(key)
        if existing is None:
            offer = ProductOffer(
                supplier_name=offer_row.supplier_name,
                item_code=offer_row.item_code,
                display_name=offer_row.display_name,
                price_with_tax=offer_row.price_with_tax,
            )
            cache.add(offer)
            return RowOutcome.NEW, offer

        if (
            existing.price_with_tax == offer_row.price_with_tax
            and existing.display_name == offer_row.display_name
        ):
            return RowOutcome.UNCHANGED, None

        existing.price_with_tax = offer_row.price_with_tax
        existing.display_name = offer_row.display_name
        return RowOutcome.UPDATED, existing


async def ingest_upload(
    store: CatalogStore,
    filename: str,
    content: bytes,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> IngestionSummary:
    """Open an uploaded file and run one ingestion over it."""
    with open_table(filename, content) as table:
        return await IngestionEngine(store, batch_size).ingest(table)
