"""
Spreadsheet Reader
==================

Reads the first sheet of an uploaded table into lazily iterated rows and
normalizes cell values.

Supported formats:
- .xlsx / .xlsm via openpyxl (read-only, cached values)
- .csv via pandas (all cells read as text)

Row 0 is the header. Data rows keep their zero-based sheet index so that
log messages point at the row the user sees.
"""

import io
import math
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import load_workbook

from supplier_pricing.utils.errors import ParsingError, UnsupportedFileError
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

XLSX_EXTENSIONS = frozenset({".xlsx", ".xlsm"})
CSV_EXTENSIONS = frozenset({".csv"})
SUPPORTED_EXTENSIONS = XLSX_EXTENSIONS | CSV_EXTENSIONS

PRICE_QUANTUM = Decimal("0.01")
ZERO_PRICE = Decimal("0.00")


@dataclass(frozen=True, slots=True)
class SheetRow:
    """One data row: its sheet index and raw cell values."""

    index: int
    values: tuple[Any, ...]

    def get(self, column: int) -> Any:
        """Cell value at column, None past the end of a short row."""
        if column < len(self.values):
            return self.values[column]
        return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class TableSource(ABC):
    """
    First sheet of an uploaded table.

    iter_rows() may be called more than once; each call re-reads the
    sheet lazily rather than holding all rows in memory.
    """

    def __init__(self, filename: str) -> None:
        self.filename = filename

    @abstractmethod
    def header(self) -> tuple[Any, ...]:
        """Cell values of row 0 (empty tuple for an empty sheet)."""

    @abstractmethod
    def _raw_rows(self) -> Iterator[Sequence[Any]]:
        """All rows after the header, in sheet order."""

    def iter_rows(self) -> Iterator[SheetRow]:
        """Yield non-empty data rows starting at sheet index 1."""
        for index, values in enumerate(self._raw_rows(), start=1):
            if all(_is_blank(value) for value in values):
                continue
            yield SheetRow(index=index, values=tuple(values))

    def close(self) -> None:
        """Release underlying resources."""

    def __enter__(self) -> "TableSource":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class XlsxTable(TableSource):
    """Excel workbook read through openpyxl in read-only mode."""

    def __init__(self, filename: str, content: bytes) -> None:
        super().__init__(filename)
        try:
            self._workbook = load_workbook(
                io.BytesIO(content), read_only=True, data_only=True
            )
        except Exception as e:
            raise ParsingError(
                f"Cannot read Excel file: {filename}",
                details={"error": str(e)},
            ) from e

        if not self._workbook.worksheets:
            self._workbook.close()
            raise ParsingError(f"No sheets found in Excel file: {filename}")
        self._sheet = self._workbook.worksheets[0]

    def header(self) -> tuple[Any, ...]:
        for values in self._sheet.iter_rows(min_row=1, max_row=1, values_only=True):
            return tuple(values)
        return ()

    def _raw_rows(self) -> Iterator[Sequence[Any]]:
        yield from self._sheet.iter_rows(min_row=2, values_only=True)

    def close(self) -> None:
        self._workbook.close()


class CsvTable(TableSource):
    """CSV file read through pandas with every cell as text."""

    def __init__(self, filename: str, content: bytes) -> None:
        super().__init__(filename)
        self._frame = self._read(content)

    def _read(self, content: bytes) -> pd.DataFrame:
        read_kwargs: dict[str, Any] = {
            "header": None,
            "dtype": str,
            "keep_default_na": False,
            "sep": None,
            "engine": "python",
        }
        try:
            try:
                return pd.read_csv(io.BytesIO(content), encoding="utf-8-sig", **read_kwargs)
            except UnicodeDecodeError as e:
                logger.warning("UTF-8 decode failed, trying latin-1", error=str(e))
                return pd.read_csv(io.BytesIO(content), encoding="latin-1", **read_kwargs)
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except Exception as e:
            raise ParsingError(
                f"Cannot read CSV file: {self.filename}",
                details={"error": str(e)},
            ) from e

    def header(self) -> tuple[Any, ...]:
        if self._frame.empty:
            return ()
        return tuple(self._frame.iloc[0].tolist())

    def _raw_rows(self) -> Iterator[Sequence[Any]]:
        for values in self._frame.iloc[1:].itertuples(index=False, name=None):
            yield values


def open_table(filename: str, content: bytes) -> TableSource:
    """
    Open the first sheet of an uploaded file.

    Args:
        filename: Original filename, used to pick the reader
        content: Raw file bytes

    Returns:
        TableSource for the first sheet

    Raises:
        UnsupportedFileError: If the extension is not supported
        ParsingError: If the file cannot be read
    """
    extension = Path(filename or "").suffix.lower()
    if extension in XLSX_EXTENSIONS:
        return XlsxTable(filename, content)
    if extension in CSV_EXTENSIONS:
        return CsvTable(filename, content)
    raise UnsupportedFileError(
        "Only Excel (.xlsx, .xlsm) and CSV files are supported",
        details={"filename": filename, "extension": extension},
    )


# =============================================================================
# Cell normalization
# =============================================================================


def cell_text(value: Any) -> str | None:
    """
    Normalize a text cell.

    Strings are trimmed (blank -> None). Integral numbers become integer
    text so that barcodes stored as numbers read back as "4600000000000"
    rather than "4.6e12". Other cell types carry no text.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return str(int(value))
        return str(value)
    return None


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        text = value.replace(",", ".").replace("\u00a0", "").replace(" ", "").strip()
        if not text:
            return None
        try:
            return Decimal(text)
        except InvalidOperation:
            return None
    return None


def cell_price(value: Any) -> Decimal:
    """
    Normalize a price cell to two decimal places.

    Comma is accepted as decimal separator. Blank or unparsable values
    yield zero instead of failing the row.
    """
    amount = _to_decimal(value)
    if amount is None or not amount.is_finite():
        if not _is_blank(value):
            logger.warning("Unparsable price, using zero", value=str(value))
        return ZERO_PRICE
    try:
        return amount.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        logger.warning("Price out of range, using zero", value=str(value))
        return ZERO_PRICE


def cell_quantity(value: Any) -> int:
    """
    Normalize a quantity cell to an integer (fractional parts truncated).

    Blank or unparsable values yield 0, which callers treat as invalid.
    """
    amount = _to_decimal(value)
    if amount is None or not amount.is_finite():
        return 0
    return int(amount)


def to_json_value(value: Any) -> Any:
    """Convert a raw cell value into something JSON can store verbatim."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value
