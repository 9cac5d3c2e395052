"""
History Repository
==================

Per-account upload history.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_pricing.db.models import HistoryEntry, HistoryType


class HistoryRepository:
    """Repository for history_entries table operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        account: str,
        history_type: HistoryType,
        request_details: str,
        response_details: Any,
        file_content: list[dict[str, Any]] | None = None,
    ) -> HistoryEntry:
        """
        Append a history entry and flush it.

        Args:
            account: Caller the entry belongs to
            history_type: FILE_UPLOAD or PRICE_ANALYSIS
            request_details: Human-readable description of the request
            response_details: JSON-serializable response payload
            file_content: Raw uploaded rows, kept verbatim

        Returns:
            The pending HistoryEntry
        """
        entry = HistoryEntry(
            account=account,
            history_type=history_type,
            request_details=request_details,
            response_details=response_details,
            file_content=file_content,
        )
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def list_for_account(
        self,
        account: str,
        history_type: HistoryType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[HistoryEntry]:
        """
        List an account's history, newest first.

        Args:
            account: Account identifier
            history_type: Optional filter by entry kind
            limit: Maximum entries to return
            offset: Entries to skip

        Returns:
            List of HistoryEntry instances
        """
        query = select(HistoryEntry).where(HistoryEntry.account == account)
        if history_type is not None:
            query = query.where(HistoryEntry.history_type == history_type)
        query = query.order_by(HistoryEntry.created_at.desc(), HistoryEntry.id.desc())
        query = query.offset(offset).limit(limit)

        result = await self._session.execute(query)
        return list(result.scalars().all())
