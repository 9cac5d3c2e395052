"""
Ingestion Tasks
===============

arq task running a supplier data upload in the background.

The HTTP layer stores the upload under UPLOADS_DIR and enqueues
ingest_supplier_file_task; the task runs the same engine and audit trail
as the synchronous endpoint and removes the stored file when done.
"""

from pathlib import Path
from typing import Any

from supplier_pricing.config.settings import get_settings
from supplier_pricing.db.connection import get_session
from supplier_pricing.services.audit_sink import AuditSink
from supplier_pricing.services.catalog_store import SqlCatalogStore
from supplier_pricing.services.ingestion_engine import ingest_upload
from supplier_pricing.utils.errors import ParsingError
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)


def _remove_upload(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to remove stored upload", path=str(path), error=str(e))


async def ingest_supplier_file_task(
    ctx: dict[str, Any],
    file_path: str,
    original_filename: str,
    account: str,
) -> dict[str, Any]:
    """
    Ingest a stored supplier upload.

    A file that cannot be parsed (wrong format, missing columns) yields an
    error result; a database failure is re-raised so arq records the job
    as failed.

    Args:
        ctx: arq worker context
        file_path: Stored upload under UPLOADS_DIR
        original_filename: Name the caller uploaded, used to pick the reader
        account: Caller the run is recorded for

    Returns:
        Ingestion summary dict, or {"success": False, "error", "message", "details"}
    """
    settings = get_settings()
    path = Path(file_path)
    job_id = ctx.get("job_id")
    audit = ctx.get("audit_sink") or AuditSink()

    logger.info(
        "Background ingestion started",
        job_id=job_id,
        file=original_filename,
        account=account,
    )

    try:
        content = path.read_bytes()
        async with get_session() as session:
            summary = await ingest_upload(
                SqlCatalogStore(session),
                original_filename,
                content,
                batch_size=settings.ingestion_batch_size,
            )
    except ParsingError as e:
        logger.warning("Background ingestion rejected", job_id=job_id, error=e.message)
        await audit.record_ingestion_failure(account, original_filename, e)
        return {
            "success": False,
            "error": type(e).__name__,
            "message": e.message,
            "details": e.details,
        }
    except FileNotFoundError as e:
        logger.error("Stored upload missing", job_id=job_id, path=file_path)
        return {
            "success": False,
            "error": "FileNotFoundError",
            "message": f"Stored upload not found: {path.name}",
            "details": {"error": str(e)},
        }
    except Exception as e:
        logger.error("Background ingestion failed", job_id=job_id, error=str(e))
        await audit.record_ingestion_failure(account, original_filename, e)
        raise
    finally:
        _remove_upload(path)

    await audit.record_ingestion(account, original_filename, summary)
    logger.info("Background ingestion finished", job_id=job_id, message=summary.message)
    return summary.to_dict()
