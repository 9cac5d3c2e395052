"""
Catalog Store
=============

The persistence operations the ingestion engine and price resolver need,
behind one interface. SqlCatalogStore implements it on top of the
repositories; tests substitute an in-memory store.
"""

from collections.abc import Iterable, Sequence
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_pricing.db.models import ProductOffer
from supplier_pricing.db.repositories import ProductOfferRepository, SupplierRepository
from supplier_pricing.utils.errors import DatabaseError
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)


class CatalogStore(Protocol):
    """Bulk catalog reads and writes. Every method is one round trip."""

    async def existing_suppliers(self, names: Iterable[str]) -> set[str]: ...

    async def create_suppliers(self, names: Iterable[str]) -> int: ...

    async def offers_for_suppliers(self, names: Iterable[str]) -> list[ProductOffer]: ...

    async def write_offers(self, offers: Sequence[ProductOffer]) -> int: ...

    async def offers_for_item_codes(self, item_codes: Iterable[str]) -> list[ProductOffer]: ...


class SqlCatalogStore:
    """CatalogStore backed by an AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._suppliers = SupplierRepository(session)
        self._offers = ProductOfferRepository(session)

    async def existing_suppliers(self, names: Iterable[str]) -> set[str]:
        return await self._suppliers.find_existing_names(names)

    async def create_suppliers(self, names: Iterable[str]) -> int:
        try:
            return await self._suppliers.create_many(names)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise DatabaseError("Failed to create suppliers", details={"error": str(e)}) from e

    async def offers_for_suppliers(self, names: Iterable[str]) -> list[ProductOffer]:
        return await self._offers.find_by_supplier_names(names)

    async def write_offers(self, offers: Sequence[ProductOffer]) -> int:
        """
        Upsert one batch.

        Raises:
            DatabaseError: If the batch cannot be written. Batches committed
                before this one are unaffected.
        """
        try:
            return await self._offers.upsert_batch(offers)
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error("Offer batch write failed", count=len(offers), error=str(e))
            raise DatabaseError(
                "Failed to write offer batch",
                details={"batch_size": len(offers), "error": str(e)},
            ) from e

    async def offers_for_item_codes(self, item_codes: Iterable[str]) -> list[ProductOffer]:
        return await self._offers.find_by_item_codes(item_codes)
