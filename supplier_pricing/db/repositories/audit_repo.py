"""
Audit Repository
================

Create-only access to the audit_records table.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from supplier_pricing.db.models import AuditAction, AuditRecord


class AuditRepository:
    """Repository for audit_records. There is no update or delete path."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, subject: str, action: AuditAction, detail: str) -> AuditRecord:
        """
        Append an audit record and flush it.

        Args:
            subject: Account or other identifier the entry is about
            action: Kind of audited event
            detail: Free-text description

        Returns:
            The pending AuditRecord
        """
        record = AuditRecord(subject=subject, action=action, detail=detail)
        self._session.add(record)
        await self._session.flush()
        return record
