"""
Suppliers Repository
====================

Bulk lookup and creation of suppliers by name.
"""

from collections.abc import Iterable

from sqlalchemy import String, any_, bindparam, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_pricing.db.models import Supplier
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)


class SupplierRepository:
    """
    Repository for the suppliers table.

    Names are bound as a single array parameter, so one statement covers
    any number of suppliers.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_existing_names(self, names: Iterable[str]) -> set[str]:
        """
        Return the subset of names that already exist.

        Args:
            names: Supplier names to look up

        Returns:
            Set of names present in the suppliers table
        """
        names = list(names)
        if not names:
            return set()

        query = select(Supplier.name).where(
            Supplier.name == any_(bindparam("names", names, type_=postgresql.ARRAY(String)))
        )
        result = await self._session.execute(query)
        return set(result.scalars().all())

    async def create_many(self, names: Iterable[str]) -> int:
        """
        Insert suppliers in one statement.

        Conflicting names (created concurrently by another run) are skipped.

        Args:
            names: Supplier names to create

        Returns:
            Number of names submitted
        """
        rows = [{"name": name} for name in sorted(set(names))]
        if not rows:
            return 0

        stmt = insert(Supplier).values(rows).on_conflict_do_nothing(index_elements=["name"])
        await self._session.execute(stmt)
        await self._session.commit()

        logger.info("Suppliers created", count=len(rows))
        return len(rows)
