"""
Subscriptions Repository
========================

Read-only subscription lookups. The billing collaborator owns the writes.
"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_pricing.db.models import Subscription


class SubscriptionRepository:
    """Repository for the subscriptions table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, account: str) -> Subscription | None:
        """Get the subscription for an account, if any."""
        result = await self._session.execute(
            select(Subscription).where(Subscription.account == account)
        )
        return result.scalar_one_or_none()

    async def is_active(self, account: str, now: datetime | None = None) -> bool:
        """
        Check whether an account may use gated operations.

        Unknown accounts are inactive.
        """
        subscription = await self.get(account)
        if subscription is None:
            return False
        return subscription.is_active_at(now or datetime.now(timezone.utc))
