"""
Pydantic Response Models
========================

API request and response schemas for the supplier pricing endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from supplier_pricing.db.models import HistoryType, ProductOffer
from supplier_pricing.schemas.domain import (
    IngestionSummary,
    InvoiceLine,
    PriceQuery,
    PriceResolution,
)


class IngestionSummaryResponse(BaseModel):
    """
    Response for POST /api/data/upload-supplier-data.

    processed_records counts rows that caused a write (new + updated).
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Added: 2, updated: 0, unchanged: 0, duplicates skipped: 1, failed: 0. Time: 41 ms",
                "new_records": 2,
                "updated_records": 0,
                "unchanged_records": 0,
                "processed_records": 2,
                "duplicate_records": 1,
                "failed_records": 0,
                "total_rows": 3,
                "elapsed_ms": 41,
            }
        }
    )

    success: Annotated[bool, Field(description="Whether the run completed")]
    message: Annotated[str, Field(description="Human-readable run summary")]
    new_records: Annotated[int, Field(ge=0, description="Offers created")]
    updated_records: Annotated[int, Field(ge=0, description="Offers whose price or name changed")]
    unchanged_records: Annotated[int, Field(ge=0, description="Offers identical to the catalog")]
    processed_records: Annotated[int, Field(ge=0, description="new_records + updated_records")]
    duplicate_records: Annotated[int, Field(ge=0, description="Repeated rows skipped within the file")]
    failed_records: Annotated[int, Field(ge=0, description="Rows that could not be processed")]
    total_rows: Annotated[int, Field(ge=0, description="Non-empty data rows read")]
    elapsed_ms: Annotated[int, Field(ge=0, description="Run duration in milliseconds")]

    @classmethod
    def from_summary(cls, summary: IngestionSummary) -> "IngestionSummaryResponse":
        return cls(**summary.to_dict())


class PriceResolutionResponse(BaseModel):
    """
    One resolved item of POST /api/data/analyze-prices.

    Also accepted back by the export endpoints.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "item_code": "4600000000017",
                "quantity": 3,
                "display_name": "Widget",
                "supplier_name": "B",
                "unit_price": "9.00",
                "total_price": "27.00",
                "requires_manual_processing": False,
                "message": "Supplier B at 9.00 per unit",
            }
        }
    )

    item_code: Annotated[str, Field(description="Requested item code")]
    quantity: Annotated[int, Field(ge=1, description="Requested quantity")]
    display_name: Annotated[str | None, Field(default=None, description="Name from the chosen offer")]
    supplier_name: Annotated[str | None, Field(default=None, description="Chosen supplier")]
    unit_price: Annotated[Decimal | None, Field(default=None, description="Price with tax per unit")]
    total_price: Annotated[Decimal | None, Field(default=None, description="unit_price * quantity")]
    requires_manual_processing: Annotated[
        bool, Field(description="True when no priced offer exists for the item")
    ]
    message: Annotated[str, Field(description="Outcome description")]

    @classmethod
    def from_domain(cls, result: PriceResolution) -> "PriceResolutionResponse":
        return cls(
            item_code=result.item_code,
            quantity=result.quantity,
            display_name=result.display_name,
            supplier_name=result.supplier_name,
            unit_price=result.unit_price,
            total_price=result.total_price,
            requires_manual_processing=result.requires_manual_processing,
            message=result.message,
        )

    def to_domain(self) -> PriceResolution:
        return PriceResolution(
            item_code=self.item_code,
            quantity=self.quantity,
            requires_manual_processing=self.requires_manual_processing,
            message=self.message,
            supplier_name=self.supplier_name,
            display_name=self.display_name,
            unit_price=self.unit_price,
            total_price=self.total_price,
        )


class ExportResultsRequest(BaseModel):
    """Body of the export endpoints: results as returned by analyze-prices."""

    results: Annotated[
        list[PriceResolutionResponse],
        Field(min_length=1, description="Resolution results to export"),
    ]


class RequestRow(BaseModel):
    """One item code and quantity of a past price request."""

    item_code: Annotated[str, Field(min_length=1, description="Requested item code")]
    quantity: Annotated[int, Field(ge=0, description="Requested quantity")]

    def to_domain(self) -> PriceQuery:
        return PriceQuery(item_code=self.item_code, quantity=self.quantity)


class ExportRequestRowsRequest(BaseModel):
    """
    Body of POST /api/data/export-history-to-excel.

    The rows usually come from a PRICE_ANALYSIS history entry; the exported
    file can be uploaded to analyze-prices again.
    """

    rows: Annotated[list[RequestRow], Field(min_length=1, description="Rows to export")]


class InvoiceItem(BaseModel):
    """One line of POST /api/data/export-invoice."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "item_code": "4600000000017",
                "display_name": "Widget",
                "quantity": 3,
                "unit_price": "9.00",
                "total_price": "27.00",
            }
        }
    )

    item_code: Annotated[str, Field(description="Item code")]
    display_name: Annotated[str | None, Field(default=None, description="Product name")]
    quantity: Annotated[int, Field(ge=0, description="Invoiced quantity")]
    unit_price: Annotated[Decimal | None, Field(default=None, description="Price per unit")]
    total_price: Annotated[Decimal | None, Field(default=None, description="Line total")]

    def to_domain(self) -> InvoiceLine:
        return InvoiceLine(
            item_code=self.item_code,
            quantity=self.quantity,
            display_name=self.display_name,
            unit_price=self.unit_price,
            total_price=self.total_price,
        )


class ExportInvoiceRequest(BaseModel):
    """Body of POST /api/data/export-invoice."""

    items: Annotated[list[InvoiceItem], Field(min_length=1, description="Invoice lines")]


class CatalogOffer(BaseModel):
    """One row of the flat catalog listing."""

    supplier_name: str
    item_code: str
    display_name: str | None = None
    price_with_tax: Decimal | None = None

    @classmethod
    def from_model(cls, offer: ProductOffer) -> "CatalogOffer":
        return cls(
            supplier_name=offer.supplier_name,
            item_code=offer.item_code,
            display_name=offer.display_name,
            price_with_tax=offer.price_with_tax,
        )


class CatalogPage(BaseModel):
    """Response for GET /api/data/catalog."""

    items: Annotated[list[CatalogOffer], Field(description="Offers on this page")]
    total: Annotated[int, Field(ge=0, description="Offers in the whole catalog")]
    page: Annotated[int, Field(ge=1, description="Current page number")]
    page_size: Annotated[int, Field(ge=1, description="Offers per page")]
    pages: Annotated[int, Field(ge=0, description="Total number of pages")]


class HistoryEntryResponse(BaseModel):
    """One entry of GET /api/history."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    history_type: HistoryType
    request_details: str
    response_details: Any = None
    file_content: list[dict[str, Any]] | None = None
    created_at: datetime


class JobAcceptedResponse(BaseModel):
    """Response for POST /api/data/upload-supplier-data/async."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "job_id": "3f2c0f0e6b3a4d7f9a1b2c3d4e5f6a7b",
                "status": "queued",
                "message": "Supplier data upload queued for ingestion",
            }
        }
    )

    job_id: Annotated[str, Field(description="arq job identifier")]
    status: Annotated[Literal["queued"], Field(description="Initial job status")]
    message: Annotated[str, Field(description="Human-readable status message")]


class JobStatusResponse(BaseModel):
    """Response for GET /api/data/jobs/{job_id}."""

    job_id: Annotated[str, Field(description="arq job identifier")]
    status: Annotated[
        Literal["deferred", "queued", "in_progress", "complete", "not_found"],
        Field(description="arq job status"),
    ]
    success: Annotated[bool | None, Field(default=None, description="Job outcome once complete")]
    result: Annotated[
        dict[str, Any] | None,
        Field(default=None, description="Ingestion summary or error once complete"),
    ]
