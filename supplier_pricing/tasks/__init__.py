"""Background tasks run by the arq worker."""

from supplier_pricing.tasks.ingestion_tasks import ingest_supplier_file_task

__all__ = ["ingest_supplier_file_task"]
