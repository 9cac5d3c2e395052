"""
Audit Sink
==========

Writes the audit trail and per-account history of ingestion and price
resolution runs.

Each write uses its own session so that it never shares a transaction
with catalog writes. A failed write is logged and dropped: the run the
caller asked for has already succeeded.
"""

from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from supplier_pricing.db.connection import get_session
from supplier_pricing.db.models import AuditAction, HistoryType
from supplier_pricing.db.repositories import AuditRepository, HistoryRepository
from supplier_pricing.schemas.domain import IngestionSummary, PriceQueryBatch, PriceResolution
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class AuditSink:
    """
    Append-only recorder for completed runs.

    Usage:
        sink = AuditSink()
        await sink.record_ingestion(account, "prices.xlsx", summary)
    """

    def __init__(self, session_factory: SessionFactory = get_session) -> None:
        self._session_factory = session_factory

    async def _write(
        self,
        account: str,
        action: AuditAction,
        detail: str,
        history: dict[str, Any] | None = None,
    ) -> bool:
        try:
            async with self._session_factory() as session:
                await AuditRepository(session).add(account, action, detail)
                if history is not None:
                    await HistoryRepository(session).add(account=account, **history)
            return True
        except Exception as e:
            logger.warning(
                "Audit write failed",
                account=account,
                action=action.value,
                error=str(e),
            )
            return False

    async def record_ingestion(
        self, account: str, filename: str, summary: IngestionSummary
    ) -> bool:
        """Record a completed ingestion run."""
        return await self._write(
            account,
            AuditAction.INGESTION_RUN,
            f"Supplier data upload {filename}: {summary.message}",
            history={
                "history_type": HistoryType.FILE_UPLOAD,
                "request_details": f"Supplier data upload: {filename}",
                "response_details": summary.to_dict(),
            },
        )

    async def record_ingestion_failure(
        self, account: str, filename: str, error: Exception
    ) -> bool:
        """Record an ingestion run rejected before or during processing."""
        message = getattr(error, "message", str(error))
        return await self._write(
            account,
            AuditAction.INGESTION_REJECTED,
            f"Supplier data upload {filename} rejected: {message}",
        )

    async def record_resolution(
        self,
        account: str,
        filename: str,
        batch: PriceQueryBatch,
        results: Sequence[PriceResolution],
    ) -> bool:
        """Record a price resolution run with the raw uploaded rows."""
        manual = sum(1 for result in results if result.requires_manual_processing)
        detail = (
            f"Price analysis {filename}: {len(results)} items, "
            f"{manual} require manual processing"
        )
        return await self._write(
            account,
            AuditAction.PRICE_RESOLUTION_RUN,
            detail,
            history={
                "history_type": HistoryType.PRICE_ANALYSIS,
                "request_details": f"Price analysis: {filename}",
                "response_details": [result.to_dict() for result in results],
                "file_content": batch.raw_rows,
            },
        )
