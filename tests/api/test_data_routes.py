"""
Data Routes Tests
=================

HTTP tests for ingestion, price analysis, exports and catalog reads.
Database-backed dependencies are replaced through app.dependency_overrides.
"""

import io
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from arq.jobs import JobStatus
from fastapi import status
from fastapi.testclient import TestClient
from openpyxl import load_workbook

from supplier_pricing.api.dependencies import (
    get_arq_pool,
    get_audit_sink,
    get_catalog_store,
    get_history_repository,
    get_offer_repository,
    get_subscription_checker,
)
from supplier_pricing.api.main import create_app
from supplier_pricing.config.settings import Settings, get_settings
from supplier_pricing.db.models import HistoryEntry, HistoryType, ProductOffer
from supplier_pricing.services.audit_sink import AuditSink
from tests.helpers import INGESTION_HEADER, PRICE_REQUEST_HEADER, FakeCatalogStore, build_workbook

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SUBSCRIBED = {"X-Account-Id": "acct-1"}
UNSUBSCRIBED = {"X-Account-Id": "acct-2"}


class FakeSubscriptions:
    def __init__(self, active: set[str]) -> None:
        self.active = active

    async def is_active(self, account: str) -> bool:
        return account in self.active


@pytest.fixture
def store() -> FakeCatalogStore:
    return FakeCatalogStore()


@pytest.fixture
def audit():
    return AsyncMock(spec=AuditSink)


@pytest.fixture
def app(store, audit):
    """FastAPI app with the database and Redis replaced."""
    with (
        patch("supplier_pricing.api.main.init_database", AsyncMock()),
        patch("supplier_pricing.api.main.create_pool", AsyncMock(side_effect=ConnectionError("redis down"))),
    ):
        app = create_app()
        app.dependency_overrides[get_subscription_checker] = lambda: FakeSubscriptions({"acct-1"})
        app.dependency_overrides[get_catalog_store] = lambda: store
        app.dependency_overrides[get_audit_sink] = lambda: audit
        yield app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def _xlsx(header, rows) -> dict:
    return {"file": ("upload.xlsx", build_workbook(header, rows), XLSX)}


class TestUploadSupplierData:
    def test_requires_caller_identity(self, client):
        response = client.post(
            "/api/data/upload-supplier-data", files=_xlsx(INGESTION_HEADER, [])
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["error"] == "AuthenticationError"

    def test_requires_active_subscription(self, client):
        response = client.post(
            "/api/data/upload-supplier-data",
            files=_xlsx(INGESTION_HEADER, [("A", "111", "Widget", 10.0)]),
            headers=UNSUBSCRIBED,
        )

        assert response.status_code == status.HTTP_402_PAYMENT_REQUIRED
        assert response.json()["error"] == "SubscriptionInactiveError"

    def test_ingests_and_reports_summary(self, client, store, audit):
        rows = [
            ("A", "111", "Widget", 10.0),
            ("B", "111", "Widget", 9.0),
            ("A", "111", "Widget", 10.0),
        ]

        response = client.post(
            "/api/data/upload-supplier-data", files=_xlsx(INGESTION_HEADER, rows), headers=SUBSCRIBED
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["new_records"] == 2
        assert body["duplicate_records"] == 1
        assert body["processed_records"] == 2
        assert body["message"].startswith("Added: 2, updated: 0, unchanged: 0, duplicates skipped: 1")
        assert set(store.offers) == {("A", "111"), ("B", "111")}
        audit.record_ingestion.assert_awaited_once()
        assert audit.record_ingestion.await_args.args[:2] == ("acct-1", "upload.xlsx")

    def test_empty_file(self, client):
        response = client.post(
            "/api/data/upload-supplier-data",
            files={"file": ("upload.xlsx", b"", XLSX)},
            headers=SUBSCRIBED,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["message"] == "Uploaded file is empty"

    def test_unsupported_extension(self, client):
        response = client.post(
            "/api/data/upload-supplier-data",
            files={"file": ("prices.txt", b"some text", "text/plain")},
            headers=SUBSCRIBED,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "UnsupportedFileError"

    def test_file_too_large(self, app, client):
        app.dependency_overrides[get_settings] = lambda: Settings(max_file_size_mb=1)

        response = client.post(
            "/api/data/upload-supplier-data",
            files={"file": ("big.csv", b"x" * (1024 * 1024 + 1), "text/csv")},
            headers=SUBSCRIBED,
        )

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE

    def test_price_request_file_is_rejected(self, client, store, audit):
        response = client.post(
            "/api/data/upload-supplier-data",
            files=_xlsx(PRICE_REQUEST_HEADER, [("111", 3)]),
            headers=SUBSCRIBED,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["error"] == "MissingHeaderError"
        assert "Supplier name" in body["details"]["missing_columns"]
        assert store.offers == {}
        audit.record_ingestion_failure.assert_awaited_once()

    def test_batch_write_failure_is_service_unavailable(self, client, store):
        store.fail_on_batch = 0

        response = client.post(
            "/api/data/upload-supplier-data",
            files=_xlsx(INGESTION_HEADER, [("A", "111", "Widget", 10.0)]),
            headers=SUBSCRIBED,
        )

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["error"] == "DatabaseError"


class TestAnalyzePrices:
    def test_resolves_best_prices(self, client, store, audit):
        store.add_offer("A", "111", "Widget", "10.00")
        store.add_offer("B", "111", "Widget", "9.00")

        response = client.post(
            "/api/data/analyze-prices",
            files=_xlsx(PRICE_REQUEST_HEADER, [("111", 3), ("999", 5), ("", 1)]),
            headers=SUBSCRIBED,
        )

        assert response.status_code == status.HTTP_200_OK
        found, missing = response.json()
        assert found["supplier_name"] == "B"
        assert Decimal(found["unit_price"]) == Decimal("9.00")
        assert Decimal(found["total_price"]) == Decimal("27.00")
        assert found["requires_manual_processing"] is False
        assert missing["requires_manual_processing"] is True
        assert missing["quantity"] == 5
        assert "not found" in missing["message"]

        audit.record_resolution.assert_awaited_once()
        batch = audit.record_resolution.await_args.args[2]
        assert len(batch.raw_rows) == 3

    def test_ingestion_file_is_rejected(self, client):
        response = client.post(
            "/api/data/analyze-prices",
            files=_xlsx(INGESTION_HEADER, [("A", "111", "Widget", 10.0)]),
            headers=SUBSCRIBED,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["details"]["missing_columns"] == ["Quantity"]

    def test_requires_active_subscription(self, client):
        response = client.post(
            "/api/data/analyze-prices",
            files=_xlsx(PRICE_REQUEST_HEADER, [("111", 3)]),
            headers=UNSUBSCRIBED,
        )

        assert response.status_code == status.HTTP_402_PAYMENT_REQUIRED


RESULTS_BODY = {
    "results": [
        {
            "item_code": "111",
            "quantity": 3,
            "display_name": "Widget",
            "supplier_name": "B",
            "unit_price": "9.00",
            "total_price": "27.00",
            "requires_manual_processing": False,
            "message": "Supplier B at 9.00 per unit",
        },
        {
            "item_code": "999",
            "quantity": 5,
            "requires_manual_processing": True,
            "message": "Item not found in catalog",
        },
    ]
}


class TestExports:
    def test_export_results(self, client):
        response = client.post("/api/data/export-results", json=RESULTS_BODY, headers=SUBSCRIBED)

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == XLSX
        assert "price_analysis_export.xlsx" in response.headers["content-disposition"]
        sheet = load_workbook(io.BytesIO(response.content)).worksheets[0]
        assert sheet.max_row == 3

    def test_export_supplier_results(self, client, store):
        store.add_offer("A", "111", "Widget", "10.00")
        store.add_offer("B", "111", "Widget", "9.00")

        response = client.post(
            "/api/data/export-supplier-results", json=RESULTS_BODY, headers=SUBSCRIBED
        )

        assert response.status_code == status.HTTP_200_OK
        rows = list(
            load_workbook(io.BytesIO(response.content)).worksheets[0].iter_rows(values_only=True)
        )
        assert [row[3] for row in rows[1:3]] == ["B", "A"]
        assert store.item_code_queries == [["111", "999"]]

    def test_export_history_rows_can_be_analyzed_again(self, client, store):
        store.add_offer("B", "111", "Widget", "9.00")
        body = {"rows": [{"item_code": "111", "quantity": 3}, {"item_code": "999", "quantity": 5}]}

        response = client.post("/api/data/export-history-to-excel", json=body, headers=SUBSCRIBED)

        assert response.status_code == status.HTTP_200_OK
        assert "history_export.xlsx" in response.headers["content-disposition"]
        reanalyzed = client.post(
            "/api/data/analyze-prices",
            files={"file": ("history_export.xlsx", response.content, XLSX)},
            headers=SUBSCRIBED,
        )
        assert [item["item_code"] for item in reanalyzed.json()] == ["111", "999"]
        assert reanalyzed.json()[0]["total_price"] == "27.00"

    def test_export_invoice(self, client):
        body = {
            "items": [
                {
                    "item_code": "111",
                    "display_name": "Widget",
                    "quantity": 3,
                    "unit_price": "9.00",
                    "total_price": "27.00",
                },
                {"item_code": "222", "quantity": 2, "unit_price": "1.25", "total_price": "2.50"},
            ]
        }

        response = client.post("/api/data/export-invoice", json=body, headers=SUBSCRIBED)

        assert response.status_code == status.HTTP_200_OK
        assert "invoice_export.xlsx" in response.headers["content-disposition"]
        rows = list(
            load_workbook(io.BytesIO(response.content)).worksheets[0].iter_rows(values_only=True)
        )
        assert rows[1] == ("111", "Widget", 3, 9, 27)
        assert rows[-1][0] == "Total"
        assert rows[-1][4] == 29.5

    def test_export_invoice_requires_items(self, client):
        response = client.post("/api/data/export-invoice", json={"items": []}, headers=SUBSCRIBED)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_export_requires_results(self, client):
        response = client.post("/api/data/export-results", json={"results": []}, headers=SUBSCRIBED)

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestCatalog:
    @pytest.fixture
    def offers_repo(self, app):
        repo = MagicMock()
        repo.count = AsyncMock(return_value=3)
        repo.list_page = AsyncMock(
            return_value=[
                ProductOffer(supplier_name="A", item_code="111", price_with_tax=Decimal("10.00"))
            ]
        )

        repo.page_sizes = []

        async def pages(page_size):
            repo.page_sizes.append(page_size)
            yield [
                ProductOffer(
                    supplier_name="A",
                    item_code="111",
                    display_name="Widget",
                    price_with_tax=Decimal("10.00"),
                )
            ]
            yield [ProductOffer(supplier_name="B", item_code="222", price_with_tax=None)]

        repo.iter_all = pages
        app.dependency_overrides[get_offer_repository] = lambda: repo
        return repo

    def test_catalog_page(self, client, offers_repo):
        response = client.get(
            "/api/data/catalog", params={"page": 2, "page_size": 2}, headers=SUBSCRIBED
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["total"] == 3
        assert body["pages"] == 2
        assert body["items"][0]["item_code"] == "111"
        offers_repo.list_page.assert_awaited_once_with(offset=2, limit=2)

    def test_page_size_limit(self, client, offers_repo):
        response = client.get(
            "/api/data/catalog", params={"page_size": 100000}, headers=SUBSCRIBED
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_download_database(self, client, offers_repo):
        response = client.get("/api/data/download-database", headers=SUBSCRIBED)

        assert response.status_code == status.HTTP_200_OK
        assert "database_export.xlsx" in response.headers["content-disposition"]
        rows = list(
            load_workbook(io.BytesIO(response.content)).worksheets[0].iter_rows(values_only=True)
        )
        assert rows[1] == ("A", "111", "Widget", 10)
        assert rows[2][:2] == ("B", "222")
        assert len(rows) == 3
        assert offers_repo.page_sizes == [Settings().export_page_size]

    def test_catalog_requires_identity(self, client, offers_repo):
        assert client.get("/api/data/catalog").status_code == status.HTTP_401_UNAUTHORIZED


class TestBackgroundIngestion:
    @pytest.fixture
    def pool(self, app):
        pool = AsyncMock()
        pool.enqueue_job = AsyncMock(return_value=MagicMock(job_id="job-1"))
        app.dependency_overrides[get_arq_pool] = lambda: pool
        return pool

    def test_upload_is_stored_and_queued(self, app, client, pool, tmp_path):
        app.dependency_overrides[get_settings] = lambda: Settings(uploads_dir=str(tmp_path))

        response = client.post(
            "/api/data/upload-supplier-data/async",
            files=_xlsx(INGESTION_HEADER, [("A", "111", "Widget", 10.0)]),
            headers=SUBSCRIBED,
        )

        assert response.status_code == status.HTTP_202_ACCEPTED
        assert response.json()["job_id"] == "job-1"
        args = pool.enqueue_job.await_args.args
        assert args[0] == "ingest_supplier_file_task"
        assert args[2:] == ("upload.xlsx", "acct-1")
        stored = list(tmp_path.iterdir())
        assert [str(path) for path in stored] == [args[1]]

    def test_queue_unavailable(self, client):
        response = client.post(
            "/api/data/upload-supplier-data/async",
            files=_xlsx(INGESTION_HEADER, [("A", "111", "Widget", 10.0)]),
            headers=SUBSCRIBED,
        )

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_completed_job_status(self, client, pool):
        job = MagicMock()
        job.status = AsyncMock(return_value=JobStatus.complete)
        job.result_info = AsyncMock(
            return_value=MagicMock(success=True, result={"success": True, "new_records": 2})
        )

        with patch("supplier_pricing.api.routes.data.Job", return_value=job):
            response = client.get("/api/data/jobs/job-1", headers=SUBSCRIBED)

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "complete"
        assert body["success"] is True
        assert body["result"]["new_records"] == 2

    def test_queued_job_status(self, client, pool):
        job = MagicMock()
        job.status = AsyncMock(return_value=JobStatus.queued)

        with patch("supplier_pricing.api.routes.data.Job", return_value=job):
            response = client.get("/api/data/jobs/job-1", headers=SUBSCRIBED)

        assert response.json() == {
            "job_id": "job-1",
            "status": "queued",
            "success": None,
            "result": None,
        }


class TestHistory:
    def test_lists_callers_history(self, app, client):
        repo = MagicMock()
        repo.list_for_account = AsyncMock(
            return_value=[
                HistoryEntry(
                    id=7,
                    account="acct-1",
                    history_type=HistoryType.PRICE_ANALYSIS,
                    request_details="Price analysis: request.xlsx",
                    response_details=[{"item_code": "111"}],
                    file_content=[{"column_0": "111", "column_1": 3}],
                    created_at=datetime(2026, 1, 5, tzinfo=timezone.utc),
                )
            ]
        )
        app.dependency_overrides[get_history_repository] = lambda: repo

        response = client.get(
            "/api/history", params={"history_type": "PRICE_ANALYSIS"}, headers=SUBSCRIBED
        )

        assert response.status_code == status.HTTP_200_OK
        [entry] = response.json()
        assert entry["id"] == 7
        assert entry["file_content"] == [{"column_0": "111", "column_1": 3}]
        repo.list_for_account.assert_awaited_once_with(
            "acct-1", history_type=HistoryType.PRICE_ANALYSIS, limit=50, offset=0
        )


class TestServiceEndpoints:
    def test_health_reports_degraded_without_backends(self, client):
        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "degraded"
        assert body["checks"]["redis"]["status"] == "not_initialized"

    def test_root(self, client):
        assert client.get("/").json()["service"] == "supplier-pricing"

    def test_responses_carry_request_id(self, client):
        assert "X-Request-ID" in client.get("/").headers
