"""arq worker configuration for background ingestion.

Run with: `arq supplier_pricing.worker.WorkerSettings`

Registered tasks:
    - ingest_supplier_file_task: Ingest a stored supplier data upload
"""

from typing import Any

from arq.connections import RedisSettings

from supplier_pricing.config.settings import get_settings
from supplier_pricing.db.connection import close_database, init_database
from supplier_pricing.tasks.ingestion_tasks import ingest_supplier_file_task
from supplier_pricing.utils.logger import configure_logging, get_logger

settings = get_settings()

configure_logging()
logger = get_logger(__name__)


async def on_startup(ctx: dict[str, Any]) -> None:
    """Open the database pool shared by all jobs of this worker."""
    await init_database(settings)
    logger.info("Worker started", queue=settings.queue_name, max_jobs=settings.max_workers)


async def on_shutdown(ctx: dict[str, Any]) -> None:
    await close_database()
    logger.info("Worker stopped")


class WorkerSettings:
    """arq worker configuration settings.

    Retries are disabled: a rerun would re-read a file that the first
    attempt already removed.
    """

    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    queue_name = settings.queue_name
    max_jobs = settings.max_workers
    job_timeout = settings.job_timeout
    keep_result = 3600
    max_tries = 1

    functions = [ingest_supplier_file_task]

    on_startup = on_startup
    on_shutdown = on_shutdown
