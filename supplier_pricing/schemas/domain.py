"""
Domain Models
=============

Internal domain models passed between the extractor, the engines and the
API layer. Plain dataclasses: rows are created tens of thousands of times
per run.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


@dataclass(slots=True)
class OfferRow:
    """One validated data row of a supplier upload."""

    row_index: int
    supplier_name: str
    item_code: str
    display_name: str | None
    price_with_tax: Decimal

    @property
    def key(self) -> tuple[str, str]:
        return (self.supplier_name, self.item_code)


class RowOutcome(str, Enum):
    """What the ingestion engine decided for a row."""

    NEW = "new"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class IngestionSummary:
    """
    Counts and timing of one ingestion run.

    processed counts only rows that caused a write (new + updated).
    """

    new: int = 0
    updated: int = 0
    unchanged: int = 0
    duplicate: int = 0
    failed: int = 0
    total_rows: int = 0
    elapsed_ms: int = 0

    def record(self, outcome: RowOutcome) -> None:
        self.total_rows += 1
        match outcome:
            case RowOutcome.NEW:
                self.new += 1
            case RowOutcome.UPDATED:
                self.updated += 1
            case RowOutcome.UNCHANGED:
                self.unchanged += 1
            case RowOutcome.DUPLICATE:
                self.duplicate += 1
            case RowOutcome.FAILED:
                self.failed += 1

    @property
    def processed(self) -> int:
        return self.new + self.updated

    @property
    def success(self) -> bool:
        return True

    @property
    def message(self) -> str:
        return (
            f"Added: {self.new}, updated: {self.updated}, unchanged: {self.unchanged}, "
            f"duplicates skipped: {self.duplicate}, failed: {self.failed}. "
            f"Time: {self.elapsed_ms} ms"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "new_records": self.new,
            "updated_records": self.updated,
            "unchanged_records": self.unchanged,
            "processed_records": self.processed,
            "duplicate_records": self.duplicate,
            "failed_records": self.failed,
            "total_rows": self.total_rows,
            "elapsed_ms": self.elapsed_ms,
        }


@dataclass(frozen=True, slots=True)
class PriceQuery:
    """A requested item code and quantity (quantity >= 1)."""

    item_code: str
    quantity: int


@dataclass
class PriceQueryBatch:
    """
    Parsed price request upload.

    Attributes:
        queries: Valid pairs in file order
        raw_rows: Every non-empty data row as {"column_<j>": value}
        dropped: Rows excluded for blank item code or quantity <= 0
    """

    queries: list[PriceQuery] = field(default_factory=list)
    raw_rows: list[dict[str, Any]] = field(default_factory=list)
    dropped: int = 0


@dataclass
class PriceResolution:
    """Outcome for one requested item: a chosen offer or manual processing."""

    item_code: str
    quantity: int
    requires_manual_processing: bool
    message: str
    supplier_name: str | None = None
    display_name: str | None = None
    unit_price: Decimal | None = None
    total_price: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_code": self.item_code,
            "quantity": self.quantity,
            "display_name": self.display_name,
            "supplier_name": self.supplier_name,
            "unit_price": str(self.unit_price) if self.unit_price is not None else None,
            "total_price": str(self.total_price) if self.total_price is not None else None,
            "requires_manual_processing": self.requires_manual_processing,
            "message": self.message,
        }


@dataclass(frozen=True, slots=True)
class InvoiceLine:
    """One invoice line; missing prices are written as zero."""

    item_code: str
    quantity: int
    display_name: str | None = None
    unit_price: Decimal | None = None
    total_price: Decimal | None = None
