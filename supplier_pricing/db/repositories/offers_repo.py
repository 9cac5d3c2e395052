"""
Product Offers Repository
=========================

Data access layer for the product_offers table.

Bulk reads are single statements with array parameters; writes are
multi-row upserts keyed on (supplier_name, item_code).
"""

from collections.abc import AsyncIterator, Iterable, Sequence

from sqlalchemy import String, any_, bindparam, func, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_pricing.db.models import ProductOffer
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)


def _array_param(name: str, values: Iterable[str]):
    return bindparam(name, list(values), type_=postgresql.ARRAY(String))


class ProductOfferRepository:
    """Repository for product_offers table operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_supplier_names(self, supplier_names: Iterable[str]) -> list[ProductOffer]:
        """
        Load every offer belonging to the given suppliers.

        Returned objects are detached from the session: callers mutate them
        in place and write them back through upsert_batch only.

        Args:
            supplier_names: Suppliers whose offers to load

        Returns:
            List of detached ProductOffer instances
        """
        names = list(supplier_names)
        if not names:
            return []

        query = select(ProductOffer).where(
            ProductOffer.supplier_name == any_(_array_param("supplier_names", names))
        )
        result = await self._session.execute(query)
        offers = list(result.scalars().all())
        self._session.expunge_all()
        return offers

    async def find_by_item_codes(self, item_codes: Iterable[str]) -> list[ProductOffer]:
        """
        Fetch all competing offers for the given item codes.

        Ordered by item code, then ascending price. The order is a hint for
        readers of the result; it carries no correctness guarantee.

        Args:
            item_codes: Item codes to fetch

        Returns:
            List of ProductOffer instances
        """
        codes = list(item_codes)
        if not codes:
            return []

        query = (
            select(ProductOffer)
            .where(ProductOffer.item_code == any_(_array_param("item_codes", codes)))
            .order_by(ProductOffer.item_code, ProductOffer.price_with_tax.asc().nulls_last())
        )
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def upsert_batch(self, offers: Sequence[ProductOffer]) -> int:
        """
        Write a batch of new and changed offers in one transaction.

        Uses INSERT ... ON CONFLICT (supplier_name, item_code) DO UPDATE so
        that an offer created concurrently by another run is updated rather
        than rejected. The session identity map is cleared afterwards to
        bound memory on very large files.

        Args:
            offers: Offers staged by the ingestion engine

        Returns:
            Number of offers written
        """
        if not offers:
            return 0

        rows = [
            {
                "supplier_name": offer.supplier_name,
                "item_code": offer.item_code,
                "display_name": offer.display_name,
                "price_with_tax": offer.price_with_tax,
            }
            for offer in offers
        ]

        stmt = insert(ProductOffer).values(rows)
        stmt = stmt.on_conflict_do_update(
            constraint="uq_offer_supplier_item",
            set_={
                "display_name": stmt.excluded.display_name,
                "price_with_tax": stmt.excluded.price_with_tax,
                "updated_at": func.now(),
            },
        )
        await self._session.execute(stmt)
        await self._session.commit()
        self._session.expunge_all()

        logger.debug("Offer batch written", count=len(rows))
        return len(rows)

    async def count(self) -> int:
        """Total number of offers in the catalog."""
        result = await self._session.execute(select(func.count(ProductOffer.id)))
        return result.scalar_one()

    async def list_page(self, offset: int, limit: int) -> list[ProductOffer]:
        """
        Get one page of the catalog ordered by supplier and item code.

        Args:
            offset: Rows to skip
            limit: Maximum rows to return

        Returns:
            List of ProductOffer instances
        """
        query = (
            select(ProductOffer)
            .order_by(ProductOffer.supplier_name, ProductOffer.item_code)
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def iter_all(self, page_size: int) -> AsyncIterator[list[ProductOffer]]:
        """
        Iterate the whole catalog in id order, one page at a time.

        Keyset pagination on id keeps each query cheap regardless of depth.

        Args:
            page_size: Rows per page

        Yields:
            Lists of ProductOffer instances
        """
        last_id = 0
        while True:
            query = (
                select(ProductOffer)
                .where(ProductOffer.id > last_id)
                .order_by(ProductOffer.id)
                .limit(page_size)
            )
            result = await self._session.execute(query)
            page = list(result.scalars().all())
            if not page:
                return
            last_id = page[-1].id
            yield page
            self._session.expunge_all()
