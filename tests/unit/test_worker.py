"""
Worker Tests
============

Background ingestion task and arq worker configuration.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from supplier_pricing.services.audit_sink import AuditSink
from supplier_pricing.tasks.ingestion_tasks import ingest_supplier_file_task
from supplier_pricing.utils.errors import DatabaseError
from tests.helpers import INGESTION_HEADER, PRICE_REQUEST_HEADER, FakeCatalogStore, build_workbook


@pytest.fixture
def store() -> FakeCatalogStore:
    return FakeCatalogStore()


@pytest.fixture
def ctx():
    return {"job_id": "job-1", "audit_sink": AsyncMock(spec=AuditSink)}


@pytest.fixture
def patched_store(store):
    @asynccontextmanager
    async def session_factory():
        yield MagicMock()

    with (
        patch("supplier_pricing.tasks.ingestion_tasks.get_session", session_factory),
        patch("supplier_pricing.tasks.ingestion_tasks.SqlCatalogStore", return_value=store),
    ):
        yield store


def _stored(tmp_path, header, rows):
    path = tmp_path / "a1b2c3.xlsx"
    path.write_bytes(build_workbook(header, rows))
    return path


class TestIngestSupplierFileTask:
    @pytest.mark.asyncio
    async def test_ingests_and_removes_upload(self, ctx, patched_store, tmp_path):
        path = _stored(
            tmp_path,
            INGESTION_HEADER,
            [("A", "111", "Widget", 10.0), ("B", "111", "Widget", 9.0)],
        )

        result = await ingest_supplier_file_task(ctx, str(path), "supplier.xlsx", "acct-1")

        assert result["success"] is True
        assert result["new_records"] == 2
        assert set(patched_store.offers) == {("A", "111"), ("B", "111")}
        assert not path.exists()
        ctx["audit_sink"].record_ingestion.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_columns_yield_error_result(self, ctx, patched_store, tmp_path):
        path = _stored(tmp_path, PRICE_REQUEST_HEADER, [("111", 3)])

        result = await ingest_supplier_file_task(ctx, str(path), "request.xlsx", "acct-1")

        assert result["success"] is False
        assert result["error"] == "MissingHeaderError"
        assert "Supplier name" in result["details"]["missing_columns"]
        assert not path.exists()
        ctx["audit_sink"].record_ingestion_failure.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_database_failure_is_raised(self, ctx, patched_store, tmp_path):
        patched_store.fail_on_batch = 0
        path = _stored(tmp_path, INGESTION_HEADER, [("A", "111", "Widget", 10.0)])

        with pytest.raises(DatabaseError):
            await ingest_supplier_file_task(ctx, str(path), "supplier.xlsx", "acct-1")

        assert not path.exists()
        ctx["audit_sink"].record_ingestion_failure.assert_awaited_once()
        ctx["audit_sink"].record_ingestion.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_upload(self, ctx, patched_store, tmp_path):
        result = await ingest_supplier_file_task(
            ctx, str(tmp_path / "gone.xlsx"), "supplier.xlsx", "acct-1"
        )

        assert result["success"] is False
        assert result["error"] == "FileNotFoundError"


class TestWorkerSettings:
    def test_configuration(self):
        from supplier_pricing.worker import WorkerSettings, on_shutdown, on_startup

        assert WorkerSettings.functions == [ingest_supplier_file_task]
        assert WorkerSettings.max_tries == 1
        assert WorkerSettings.keep_result == 3600
        assert WorkerSettings.queue_name == "supplier-pricing-queue"
        assert WorkerSettings.on_startup is on_startup
        assert WorkerSettings.on_shutdown is on_shutdown

    @pytest.mark.asyncio
    async def test_startup_opens_database(self):
        from supplier_pricing import worker

        with patch.object(worker, "init_database", AsyncMock()) as init_db:
            await worker.on_startup({})

        init_db.assert_awaited_once_with(worker.settings)
