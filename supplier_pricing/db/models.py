"""
SQLAlchemy ORM Models
=====================

Catalog, audit and history tables for the supplier pricing service.

Tables:
    - suppliers: one row per supplier name, created lazily on first ingestion
    - product_offers: one supplier's name/price for one item code
    - audit_records: append-only trail of ingestion and resolution runs
    - history_entries: per-account request history with raw uploads
    - subscriptions: read-only view of the billing collaborator's state
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class IntPKMixin:
    """Mixin for integer primary key."""

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        nullable=False,
    )


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Supplier(Base):
    """
    Supplier identified by its unique name.

    The name is the primary key: ingestion files reference suppliers by
    name only, so offers point at the name directly.
    """

    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Supplier(name='{self.name}')>"


class ProductOffer(Base, IntPKMixin, TimestampMixin):
    """
    One supplier's offer for one item code.

    Attributes:
        supplier_name: Owning supplier (FK to suppliers.name)
        item_code: Barcode/SKU, shared across suppliers
        display_name: Product name as the supplier lists it
        price_with_tax: Wholesale price including tax, nullable

    Constraints:
        - At most one offer per (supplier_name, item_code)
    """

    __tablename__ = "product_offers"
    __table_args__ = (
        UniqueConstraint("supplier_name", "item_code", name="uq_offer_supplier_item"),
        Index("idx_product_offers_item_price", "item_code", "price_with_tax"),
    )

    supplier_name: Mapped[str] = mapped_column(
        ForeignKey("suppliers.name", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_code: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    price_with_tax: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    @property
    def cache_key(self) -> tuple[str, str]:
        """Composite identity used by the per-run catalog cache."""
        return (self.supplier_name, self.item_code)

    def __repr__(self) -> str:
        return (
            f"<ProductOffer(supplier='{self.supplier_name}', "
            f"item_code='{self.item_code}', price={self.price_with_tax})>"
        )


class AuditAction(str, PyEnum):
    """Kinds of audited runs."""

    INGESTION_RUN = "INGESTION_RUN"
    INGESTION_REJECTED = "INGESTION_REJECTED"
    PRICE_RESOLUTION_RUN = "PRICE_RESOLUTION_RUN"


class AuditRecord(Base, IntPKMixin):
    """Append-only audit entry. Never updated or deleted by the service."""

    __tablename__ = "audit_records"

    subject: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    action: Mapped[AuditAction] = mapped_column(
        SQLEnum(AuditAction, name="audit_action", native_enum=False, length=50),
        nullable=False,
        index=True,
    )
    detail: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditRecord(id={self.id}, subject='{self.subject}', action='{self.action}')>"


class HistoryType(str, PyEnum):
    """History entry kind."""

    FILE_UPLOAD = "FILE_UPLOAD"
    PRICE_ANALYSIS = "PRICE_ANALYSIS"


class HistoryEntry(Base, IntPKMixin):
    """
    Per-account record of an upload and what the service answered.

    For price analysis the raw uploaded rows are kept in file_content,
    since the uploaded request is the basis of the purchase being made.
    """

    __tablename__ = "history_entries"

    account: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    history_type: Mapped[HistoryType] = mapped_column(
        SQLEnum(HistoryType, name="history_type", native_enum=False, length=50),
        nullable=False,
        index=True,
    )
    request_details: Mapped[str] = mapped_column(Text, nullable=False)
    response_details: Mapped[Any] = mapped_column(
        postgresql.JSONB(astext_type=Text),
        nullable=True,
    )
    file_content: Mapped[list[dict[str, Any]] | None] = mapped_column(
        postgresql.JSONB(astext_type=Text),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<HistoryEntry(id={self.id}, account='{self.account}', type='{self.history_type}')>"


class SubscriptionStatus(str, PyEnum):
    """Subscription states written by the billing collaborator."""

    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    PENDING = "PENDING"


class Subscription(Base):
    """Subscription state per account. Read-only for this service."""

    __tablename__ = "subscriptions"

    account: Mapped[str] = mapped_column(String(255), primary_key=True)
    status: Mapped[SubscriptionStatus] = mapped_column(
        SQLEnum(SubscriptionStatus, name="subscription_status", native_enum=False, length=20),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def is_active_at(self, moment: datetime) -> bool:
        """Active means status ACTIVE and not yet past expiry."""
        return self.status == SubscriptionStatus.ACTIVE and self.expires_at > moment
