"""Shared test helpers: an in-memory catalog store and workbook builders."""

import io
from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Any

from openpyxl import Workbook

from supplier_pricing.db.models import ProductOffer
from supplier_pricing.utils.errors import DatabaseError

INGESTION_HEADER = ("Наименование поставщика", "Штрих код", "Наименование", "ПЦ с НДС опт")
PRICE_REQUEST_HEADER = ("Штрихкод", "Количество")


def build_workbook(header: Sequence[Any], rows: Iterable[Sequence[Any]]) -> bytes:
    """Build an xlsx file with one sheet: header row, then data rows."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(list(header))
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _price(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value)).quantize(Decimal("0.01"))


class FakeCatalogStore:
    """
    CatalogStore keeping suppliers and offers in dicts.

    Every call is recorded so tests can assert how many bulk operations ran
    and what each batch write contained.
    """

    def __init__(self, offers: Iterable[tuple[str, str, str | None, Any]] = ()) -> None:
        self.suppliers: set[str] = set()
        self.offers: dict[tuple[str, str], dict[str, Any]] = {}
        self.supplier_lookups: list[set[str]] = []
        self.created_suppliers: list[set[str]] = []
        self.written_batches: list[list[tuple[str, str]]] = []
        self.item_code_queries: list[list[str]] = []
        self.fail_on_batch: int | None = None
        for supplier, item_code, display_name, price in offers:
            self.add_offer(supplier, item_code, display_name, price)

    def add_offer(
        self, supplier: str, item_code: str, display_name: str | None, price: Any
    ) -> None:
        self.suppliers.add(supplier)
        self.offers[(supplier, item_code)] = {
            "display_name": display_name,
            "price_with_tax": _price(price),
        }

    def offer(self, supplier: str, item_code: str) -> dict[str, Any]:
        return self.offers[(supplier, item_code)]

    def _model(self, key: tuple[str, str]) -> ProductOffer:
        data = self.offers[key]
        return ProductOffer(
            supplier_name=key[0],
            item_code=key[1],
            display_name=data["display_name"],
            price_with_tax=data["price_with_tax"],
        )

    async def existing_suppliers(self, names: Iterable[str]) -> set[str]:
        names = set(names)
        self.supplier_lookups.append(names)
        return names & self.suppliers

    async def create_suppliers(self, names: Iterable[str]) -> int:
        names = set(names)
        self.created_suppliers.append(names)
        self.suppliers |= names
        return len(names)

    async def offers_for_suppliers(self, names: Iterable[str]) -> list[ProductOffer]:
        names = set(names)
        return [self._model(key) for key in self.offers if key[0] in names]

    async def write_offers(self, offers: Sequence[ProductOffer]) -> int:
        if self.fail_on_batch is not None and len(self.written_batches) == self.fail_on_batch:
            raise DatabaseError("Failed to write offer batch", details={"batch_size": len(offers)})
        self.written_batches.append([offer.cache_key for offer in offers])
        for offer in offers:
            self.offers[offer.cache_key] = {
                "display_name": offer.display_name,
                "price_with_tax": offer.price_with_tax,
            }
        return len(offers)

    async def offers_for_item_codes(self, item_codes: Iterable[str]) -> list[ProductOffer]:
        codes = list(item_codes)
        self.item_code_queries.append(codes)
        return [self._model(key) for key in self.offers if key[1] in set(codes)]
