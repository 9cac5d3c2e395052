"""
Supplier Resolver
=================

Makes sure every supplier named in an upload exists before offers are
written against it.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from supplier_pricing.services.catalog_store import CatalogStore
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SupplierResolution:
    """Names that were already present and names created by this call."""

    existing: set[str] = field(default_factory=set)
    created: set[str] = field(default_factory=set)

    @property
    def all_names(self) -> set[str]:
        return self.existing | self.created


async def ensure_suppliers(store: CatalogStore, names: Iterable[str]) -> SupplierResolution:
    """
    Bulk-create the suppliers that do not exist yet.

    One lookup for the whole set, then one insert for the missing names
    only. Calling it again with the same names performs no write.

    Args:
        store: Catalog store
        names: Supplier names from the upload

    Returns:
        SupplierResolution with existing and newly created names
    """
    wanted = {name for name in names if name}
    if not wanted:
        return SupplierResolution()

    existing = await store.existing_suppliers(wanted)
    missing = wanted - existing
    if missing:
        await store.create_suppliers(missing)

    logger.info(
        "Suppliers resolved",
        total=len(wanted),
        existing=len(existing),
        created=len(missing),
    )
    return SupplierResolution(existing=existing, created=missing)
