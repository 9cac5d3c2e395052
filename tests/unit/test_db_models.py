"""Unit tests for SQLAlchemy ORM models and constraints.

Tests run against in-memory SQLite; JSONB columns are mapped to JSON
before the tables are created.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import JSON, create_engine, event, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from supplier_pricing.db.models import (
    AuditAction,
    AuditRecord,
    Base,
    HistoryEntry,
    HistoryType,
    ProductOffer,
    Subscription,
    SubscriptionStatus,
    Supplier,
)


@pytest.fixture(scope="function")
def db_session():
    """Create an in-memory SQLite database session for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    for table in Base.metadata.tables.values():
        for column in table.columns:
            if isinstance(column.type, postgresql.JSONB):
                column.type = JSON()

    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def _offer(supplier: str, item_code: str, price: str | None = "10.00") -> ProductOffer:
    return ProductOffer(
        supplier_name=supplier,
        item_code=item_code,
        display_name="Widget",
        price_with_tax=Decimal(price) if price is not None else None,
    )


class TestProductOffer:
    def test_create_offer(self, db_session):
        db_session.add(Supplier(name="A"))
        db_session.add(_offer("A", "111", "9.50"))
        db_session.commit()

        offer = db_session.scalars(select(ProductOffer)).one()
        assert offer.id is not None
        assert offer.price_with_tax == Decimal("9.50")
        assert offer.created_at is not None
        assert offer.cache_key == ("A", "111")

    def test_supplier_item_pair_is_unique(self, db_session):
        db_session.add(Supplier(name="A"))
        db_session.add(_offer("A", "111"))
        db_session.commit()

        db_session.add(_offer("A", "111", "12.00"))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_same_item_code_for_different_suppliers(self, db_session):
        db_session.add_all([Supplier(name="A"), Supplier(name="B")])
        db_session.add_all([_offer("A", "111"), _offer("B", "111", "9.00")])
        db_session.commit()

        assert len(db_session.scalars(select(ProductOffer)).all()) == 2

    def test_offer_requires_existing_supplier(self, db_session):
        db_session.add(_offer("Unknown", "111"))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_price_is_nullable(self, db_session):
        db_session.add(Supplier(name="A"))
        db_session.add(_offer("A", "111", None))
        db_session.commit()

        assert db_session.scalars(select(ProductOffer)).one().price_with_tax is None


class TestAuditAndHistory:
    def test_audit_record(self, db_session):
        db_session.add(
            AuditRecord(subject="acct-1", action=AuditAction.INGESTION_RUN, detail="Added: 1")
        )
        db_session.commit()

        record = db_session.scalars(select(AuditRecord)).one()
        assert record.action == AuditAction.INGESTION_RUN
        assert record.created_at is not None

    def test_history_entry_keeps_raw_rows(self, db_session):
        raw_rows = [{"column_0": "111", "column_1": 3}, {"column_0": "999", "column_1": None}]
        db_session.add(
            HistoryEntry(
                account="acct-1",
                history_type=HistoryType.PRICE_ANALYSIS,
                request_details="Price analysis: request.xlsx",
                response_details=[{"item_code": "111"}],
                file_content=raw_rows,
            )
        )
        db_session.commit()

        entry = db_session.scalars(select(HistoryEntry)).one()
        assert entry.history_type == HistoryType.PRICE_ANALYSIS
        assert entry.file_content == raw_rows


class TestSubscription:
    def test_active_until_expiry(self):
        now = datetime.now(timezone.utc)
        subscription = Subscription(
            account="acct-1",
            status=SubscriptionStatus.ACTIVE,
            expires_at=now + timedelta(days=1),
        )
        assert subscription.is_active_at(now)
        assert not subscription.is_active_at(now + timedelta(days=2))

    @pytest.mark.parametrize("status", [SubscriptionStatus.EXPIRED, SubscriptionStatus.PENDING])
    def test_other_statuses_are_inactive(self, status):
        now = datetime.now(timezone.utc)
        subscription = Subscription(
            account="acct-1", status=status, expires_at=now + timedelta(days=30)
        )
        assert not subscription.is_active_at(now)
