"""
Data Routes
===========

Supplier data ingestion, price analysis, catalog reads and Excel exports.

Endpoints:
- POST /api/data/upload-supplier-data - Ingest a supplier price list
- POST /api/data/upload-supplier-data/async - Queue ingestion as an arq job
- GET  /api/data/jobs/{job_id} - Background ingestion status
- POST /api/data/analyze-prices - Resolve best prices for a request file
- POST /api/data/export-results - Resolution results as xlsx
- POST /api/data/export-supplier-results - Every offer per item as xlsx
- POST /api/data/export-history-to-excel - Request rows as a re-uploadable xlsx
- POST /api/data/export-invoice - Invoice lines with a total row as xlsx
- GET  /api/data/catalog - Paginated catalog listing
- GET  /api/data/download-database - Full catalog as xlsx

Ingestion and price analysis require an active subscription.
"""

import math
from pathlib import Path
from typing import Annotated
from uuid import uuid4

from arq.connections import ArqRedis
from arq.jobs import Job, JobStatus
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import Response

from supplier_pricing.api.dependencies import (
    AuditSinkDep,
    CallerDep,
    CatalogStoreDep,
    SettingsDep,
    SubscribedCallerDep,
    get_arq_pool,
    get_offer_repository,
    read_upload,
)
from supplier_pricing.db.repositories import ProductOfferRepository
from supplier_pricing.ingest.spreadsheet import open_table
from supplier_pricing.schemas.responses import (
    CatalogOffer,
    CatalogPage,
    ExportInvoiceRequest,
    ExportRequestRowsRequest,
    ExportResultsRequest,
    IngestionSummaryResponse,
    JobAcceptedResponse,
    JobStatusResponse,
    PriceResolutionResponse,
)
from supplier_pricing.services.catalog_export import (
    XLSX_MEDIA_TYPE,
    export_catalog,
    export_invoice,
    export_request_rows,
    export_results,
    export_supplier_results,
)
from supplier_pricing.services.ingestion_engine import ingest_upload
from supplier_pricing.services.price_resolver import extract_price_queries, resolve
from supplier_pricing.utils.errors import SupplierPricingError, ValidationError
from supplier_pricing.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

INGESTION_TASK = "ingest_supplier_file_task"


def _xlsx_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post(
    "/upload-supplier-data",
    response_model=IngestionSummaryResponse,
    summary="Upload supplier data",
    description=(
        "Ingest a supplier price list (xlsx, xlsm or csv) with the columns supplier name, "
        "item code, display name and price with tax. New offers are created, changed "
        "offers updated and identical offers left untouched."
    ),
    responses={
        400: {"description": "Empty, unsupported or malformed file"},
        401: {"description": "Caller identity missing"},
        402: {"description": "Subscription inactive"},
        413: {"description": "File too large"},
        503: {"description": "Database unavailable"},
    },
)
async def upload_supplier_data(
    account: SubscribedCallerDep,
    file: Annotated[UploadFile, File(description="Supplier price list")],
    store: CatalogStoreDep,
    audit: AuditSinkDep,
    settings: SettingsDep,
) -> IngestionSummaryResponse:
    """Run one ingestion synchronously and return its summary."""
    content = await read_upload(file, settings)
    filename = file.filename or ""
    logger.info("Supplier data upload started", account=account, file=filename, size=len(content))

    try:
        summary = await ingest_upload(
            store, filename, content, batch_size=settings.ingestion_batch_size
        )
    except SupplierPricingError as e:
        await audit.record_ingestion_failure(account, filename, e)
        raise

    await audit.record_ingestion(account, filename, summary)
    return IngestionSummaryResponse.from_summary(summary)


@router.post(
    "/upload-supplier-data/async",
    response_model=JobAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Queue supplier data upload",
    description=(
        "Store the upload and ingest it in the background. "
        "Poll GET /api/data/jobs/{job_id} for the summary."
    ),
)
async def upload_supplier_data_async(
    account: SubscribedCallerDep,
    file: Annotated[UploadFile, File(description="Supplier price list")],
    pool: Annotated[ArqRedis, Depends(get_arq_pool)],
    settings: SettingsDep,
) -> JobAcceptedResponse:
    """Save the upload under UPLOADS_DIR and enqueue the ingestion task."""
    content = await read_upload(file, settings)
    filename = file.filename or ""

    uploads_dir = Path(settings.uploads_dir)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    stored = uploads_dir / f"{uuid4().hex}{Path(filename).suffix.lower()}"
    stored.write_bytes(content)

    job = await pool.enqueue_job(
        INGESTION_TASK,
        str(stored),
        filename,
        account,
        _queue_name=settings.queue_name,
    )
    if job is None:
        stored.unlink(missing_ok=True)
        raise ValidationError("Ingestion job could not be queued", details={"filename": filename})

    logger.info("Ingestion job queued", account=account, job_id=job.job_id, file=filename)
    return JobAcceptedResponse(
        job_id=job.job_id,
        status="queued",
        message="Supplier data upload queued for ingestion",
    )


@router.get(
    "/jobs/{job_id}",
    response_model=JobStatusResponse,
    summary="Background ingestion status",
)
async def get_job_status(
    job_id: str,
    account: CallerDep,
    pool: Annotated[ArqRedis, Depends(get_arq_pool)],
    settings: SettingsDep,
) -> JobStatusResponse:
    """Report the arq job status and, once complete, its result."""
    job = Job(job_id, redis=pool, _queue_name=settings.queue_name)
    job_status = await job.status()

    if job_status != JobStatus.complete:
        return JobStatusResponse(job_id=job_id, status=job_status.value)

    info = await job.result_info()
    if info is None:
        return JobStatusResponse(job_id=job_id, status=job_status.value)

    if isinstance(info.result, dict):
        result = info.result
        success = info.success and bool(result.get("success", True))
    else:
        result = {"error": type(info.result).__name__, "message": str(info.result)}
        success = False

    return JobStatusResponse(job_id=job_id, status=job_status.value, success=success, result=result)


@router.post(
    "/analyze-prices",
    response_model=list[PriceResolutionResponse],
    summary="Analyze prices",
    description=(
        "Upload a request file with item code and quantity columns. Returns the cheapest "
        "supplier offer per row, or a manual-processing marker when no priced offer exists."
    ),
    responses={
        400: {"description": "Empty, unsupported or malformed file"},
        401: {"description": "Caller identity missing"},
        402: {"description": "Subscription inactive"},
    },
)
async def analyze_prices(
    account: SubscribedCallerDep,
    file: Annotated[UploadFile, File(description="Price request file")],
    store: CatalogStoreDep,
    audit: AuditSinkDep,
    settings: SettingsDep,
) -> list[PriceResolutionResponse]:
    """Resolve every valid row of the request file against the catalog."""
    content = await read_upload(file, settings)
    filename = file.filename or ""

    with open_table(filename, content) as table:
        batch = extract_price_queries(table)

    results = await resolve(store, batch.queries)
    await audit.record_resolution(account, filename, batch, results)

    logger.info("Price analysis finished", account=account, file=filename, items=len(results))
    return [PriceResolutionResponse.from_domain(result) for result in results]


@router.post(
    "/export-results",
    summary="Export analysis results",
    response_class=Response,
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}}},
)
async def export_analysis_results(
    account: CallerDep,
    body: ExportResultsRequest,
) -> Response:
    """Write the given resolution results to an xlsx file."""
    content = export_results([item.to_domain() for item in body.results])
    logger.info("Results exported", account=account, items=len(body.results))
    return _xlsx_response(content, "price_analysis_export.xlsx")


@router.post(
    "/export-supplier-results",
    summary="Export detailed analysis results",
    description="Every priced offer per item, cheapest first, with its percentage above the best price.",
    response_class=Response,
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}}},
)
async def export_detailed_results(
    account: CallerDep,
    body: ExportResultsRequest,
    store: CatalogStoreDep,
) -> Response:
    """Expand the given results with all competing offers."""
    results = [item.to_domain() for item in body.results]
    offers = await store.offers_for_item_codes(sorted({r.item_code for r in results}))
    content = export_supplier_results(results, offers)
    logger.info("Detailed results exported", account=account, items=len(results))
    return _xlsx_response(content, "detailed_price_analysis_export.xlsx")


@router.post(
    "/export-history-to-excel",
    summary="Export request rows",
    description=(
        "Item code and quantity rows, e.g. from a price analysis history entry, "
        "as a file that can be uploaded to analyze-prices again."
    ),
    response_class=Response,
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}}},
)
async def export_history_to_excel(
    account: CallerDep,
    body: ExportRequestRowsRequest,
) -> Response:
    content = export_request_rows([row.to_domain() for row in body.rows])
    logger.info("Request rows exported", account=account, rows=len(body.rows))
    return _xlsx_response(content, "history_export.xlsx")


@router.post(
    "/export-invoice",
    summary="Export invoice",
    response_class=Response,
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}}},
)
async def export_invoice_lines(
    account: CallerDep,
    body: ExportInvoiceRequest,
) -> Response:
    """Invoice sheet with one row per line and a closing total row."""
    content = export_invoice([item.to_domain() for item in body.items])
    logger.info("Invoice exported", account=account, lines=len(body.items))
    return _xlsx_response(content, "invoice_export.xlsx")


@router.get(
    "/catalog",
    response_model=CatalogPage,
    summary="List catalog offers",
)
async def list_catalog(
    account: CallerDep,
    offers: Annotated[ProductOfferRepository, Depends(get_offer_repository)],
    settings: SettingsDep,
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    page_size: Annotated[int, Query(ge=1, description="Offers per page")] = 100,
) -> CatalogPage:
    """Flat catalog ordered by supplier name and item code."""
    if page_size > settings.catalog_page_size_max:
        raise ValidationError(
            f"page_size must not exceed {settings.catalog_page_size_max}",
            details={"page_size": page_size},
        )

    total = await offers.count()
    items = await offers.list_page(offset=(page - 1) * page_size, limit=page_size)
    return CatalogPage(
        items=[CatalogOffer.from_model(offer) for offer in items],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size),
    )


@router.get(
    "/download-database",
    summary="Download the catalog",
    description="The whole catalog as xlsx, in the supplier data upload layout.",
    response_class=Response,
    responses={200: {"content": {XLSX_MEDIA_TYPE: {}}}},
)
async def download_database(
    account: CallerDep,
    offers: Annotated[ProductOfferRepository, Depends(get_offer_repository)],
    settings: SettingsDep,
) -> Response:
    """Read the catalog page by page into a write-only workbook, then return it."""
    content = await export_catalog(offers.iter_all(settings.export_page_size))
    logger.info("Catalog downloaded", account=account, size=len(content))
    return _xlsx_response(content, "database_export.xlsx")
