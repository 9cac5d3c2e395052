"""
History Routes
==============

The caller's own upload and price analysis history.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from supplier_pricing.api.dependencies import CallerDep, get_history_repository
from supplier_pricing.db.models import HistoryType
from supplier_pricing.db.repositories import HistoryRepository
from supplier_pricing.schemas.responses import HistoryEntryResponse

router = APIRouter()


@router.get(
    "",
    response_model=list[HistoryEntryResponse],
    summary="List history entries",
)
async def list_history(
    account: CallerDep,
    history: Annotated[HistoryRepository, Depends(get_history_repository)],
    history_type: Annotated[HistoryType | None, Query(description="Filter by entry kind")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[HistoryEntryResponse]:
    """Newest entries first."""
    entries = await history.list_for_account(
        account, history_type=history_type, limit=limit, offset=offset
    )
    return [HistoryEntryResponse.model_validate(entry) for entry in entries]
