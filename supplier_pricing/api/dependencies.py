"""
API Dependencies
================

FastAPI dependencies for caller identity, the subscription gate, database
sessions, services and upload validation.
"""

from pathlib import Path
from typing import Annotated, AsyncGenerator, Protocol

from arq.connections import ArqRedis
from fastapi import Depends, Header, HTTPException, Request, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from supplier_pricing.config.settings import Settings, get_settings
from supplier_pricing.db.connection import get_session
from supplier_pricing.db.repositories import (
    HistoryRepository,
    ProductOfferRepository,
    SubscriptionRepository,
)
from supplier_pricing.ingest.spreadsheet import SUPPORTED_EXTENSIONS
from supplier_pricing.services.audit_sink import AuditSink
from supplier_pricing.services.catalog_store import CatalogStore, SqlCatalogStore
from supplier_pricing.utils.errors import (
    AuthenticationError,
    FileSizeError,
    SubscriptionInactiveError,
    UnsupportedFileError,
    ValidationError,
)
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)


class SubscriptionChecker(Protocol):
    async def is_active(self, account: str) -> bool: ...


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session, committed when the request succeeds."""
    async with get_session() as session:
        yield session


def get_caller(
    x_account_id: Annotated[str | None, Header(description="Authenticated account id")] = None,
) -> str:
    """
    Caller identity placed on the request by the authenticating gateway.

    Raises:
        AuthenticationError: If the header is missing or blank
    """
    account = (x_account_id or "").strip()
    if not account:
        raise AuthenticationError(
            "Caller identity is missing",
            details={"header": "X-Account-Id"},
        )
    return account


async def get_subscription_checker(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SubscriptionChecker:
    return SubscriptionRepository(session)


async def require_active_subscription(
    account: Annotated[str, Depends(get_caller)],
    subscriptions: Annotated[SubscriptionChecker, Depends(get_subscription_checker)],
) -> str:
    """
    Gate for ingestion and price resolution.

    Raises:
        SubscriptionInactiveError: If the caller has no active subscription
    """
    if not await subscriptions.is_active(account):
        logger.info("Subscription inactive", account=account)
        raise SubscriptionInactiveError(
            "An active subscription is required",
            details={"account": account},
        )
    return account


async def get_catalog_store(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> CatalogStore:
    return SqlCatalogStore(session)


async def get_offer_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ProductOfferRepository:
    return ProductOfferRepository(session)


async def get_history_repository(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> HistoryRepository:
    return HistoryRepository(session)


def get_audit_sink() -> AuditSink:
    return AuditSink()


def get_arq_pool(request: Request) -> ArqRedis:
    """arq connection opened at startup."""
    pool = getattr(request.app.state, "arq_pool", None)
    if pool is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Background queue is not available",
        )
    return pool


async def read_upload(file: UploadFile, settings: Settings) -> bytes:
    """
    Read and validate an uploaded spreadsheet.

    Raises:
        ValidationError: If the file is empty
        UnsupportedFileError: If the extension is not xlsx, xlsm or csv
        FileSizeError: If the file exceeds MAX_FILE_SIZE_MB
    """
    filename = file.filename or ""
    content = await file.read(settings.max_file_size_bytes + 1)

    if not content:
        raise ValidationError("Uploaded file is empty", details={"filename": filename})

    extension = Path(filename).suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileError(
            "Only Excel (.xlsx, .xlsm) and CSV files are supported",
            details={"filename": filename, "extension": extension},
        )

    if len(content) > settings.max_file_size_bytes:
        raise FileSizeError(
            f"File exceeds the {settings.max_file_size_mb} MB limit",
            details={"filename": filename, "max_file_size_mb": settings.max_file_size_mb},
        )

    logger.debug("Upload received", filename=filename, size=len(content))
    return content


SettingsDep = Annotated[Settings, Depends(get_settings)]
CallerDep = Annotated[str, Depends(get_caller)]
SubscribedCallerDep = Annotated[str, Depends(require_active_subscription)]
CatalogStoreDep = Annotated[CatalogStore, Depends(get_catalog_store)]
AuditSinkDep = Annotated[AuditSink, Depends(get_audit_sink)]
