"""
Catalog Cache
=============

Per-run map of existing offers keyed by (supplier_name, item_code).
"""

from collections.abc import Iterable

from supplier_pricing.db.models import ProductOffer
from supplier_pricing.services.catalog_store import CatalogStore
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

OfferKey = tuple[str, str]


class CatalogCache:
    """
    Offers of the suppliers in the current upload.

    Owned by a single run and discarded with it; not shared between runs.
    """

    def __init__(self, offers: Iterable[ProductOffer] = ()) -> None:
        self._offers: dict[OfferKey, ProductOffer] = {
            offer.cache_key: offer for offer in offers
        }

    @classmethod
    async def load(cls, store: CatalogStore, supplier_names: Iterable[str]) -> "CatalogCache":
        """Preload every offer of the given suppliers in one query."""
        offers = await store.offers_for_suppliers(supplier_names)
        cache = cls(offers)
        logger.info("Catalog cache loaded", offers=len(cache))
        return cache

    def get(self, key: OfferKey) -> ProductOffer | None:
        return self._offers.get(key)

    def add(self, offer: ProductOffer) -> None:
        self._offers[offer.cache_key] = offer

    def __len__(self) -> int:
        return len(self._offers)

    def __contains__(self, key: object) -> bool:
        return key in self._offers
