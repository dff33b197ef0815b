"""
Access Routes

Route table (under /api/v1/access):
  GET    /content/{content_item_id}          — access decision for the caller
  GET    /grants                             — gids the caller belongs to
  GET    /content/{content_item_id}/grants   — stored grant records
  POST   /content/{content_item_id}/grants   — recompute grant records
  DELETE /content/{content_item_id}/grants   — drop grant records
  POST   /grants/rebuild                     — full grant rebuild (manage capability)
"""

from fastapi import APIRouter, Depends, Query, status

from term_access.auth import get_current_principal, require_capability
from term_access.constants import Operation
from term_access.dependencies import get_access_hooks
from term_access.schemas.access import (
    AccessCheckResponse,
    GidsResponse,
    GrantRecordResponse,
    RebuildSummaryResponse,
)
from term_access.services.access_hooks import TermAccessHooks
from term_access.services.identity import Principal

router = APIRouter(tags=["Access"])


@router.get("/content/{content_item_id}", response_model=AccessCheckResponse)
async def check_access(
    content_item_id: int,
    operation: Operation = Query(Operation.VIEW),
    hooks: TermAccessHooks = Depends(get_access_hooks),
    principal: Principal = Depends(get_current_principal),
):
    result = await hooks.on_access_check(content_item_id, operation, principal)
    return AccessCheckResponse(content_item_id=content_item_id, operation=operation, result=result)


@router.get("/grants", response_model=GidsResponse)
async def list_gids(
    operation: Operation = Query(Operation.VIEW),
    hooks: TermAccessHooks = Depends(get_access_hooks),
    principal: Principal = Depends(get_current_principal),
):
    gids = await hooks.on_grants_requested(principal, operation)
    return GidsResponse(operation=operation, gids=gids)


@router.get("/content/{content_item_id}/grants", response_model=list[GrantRecordResponse])
async def get_grant_records(
    content_item_id: int,
    hooks: TermAccessHooks = Depends(get_access_hooks),
    _: Principal = Depends(require_capability("manage_capability")),
):
    records = await hooks.grants.get_grant_records(content_item_id)
    return [GrantRecordResponse(**record.to_dict()) for record in records]


@router.post("/content/{content_item_id}/grants", response_model=GrantRecordResponse)
async def record_grants(
    content_item_id: int,
    hooks: TermAccessHooks = Depends(get_access_hooks),
    _: Principal = Depends(require_capability("manage_capability")),
):
    record = await hooks.on_content_item_saved(content_item_id)
    return GrantRecordResponse(**record.to_dict())


@router.delete("/content/{content_item_id}/grants", status_code=status.HTTP_204_NO_CONTENT)
async def delete_grants(
    content_item_id: int,
    hooks: TermAccessHooks = Depends(get_access_hooks),
    _: Principal = Depends(require_capability("manage_capability")),
) -> None:
    await hooks.on_content_item_deleted(content_item_id)


@router.post("/grants/rebuild", response_model=RebuildSummaryResponse)
async def rebuild_grants(
    hooks: TermAccessHooks = Depends(get_access_hooks),
    _: Principal = Depends(require_capability("manage_capability")),
):
    summary = await hooks.rebuild_grants()
    return RebuildSummaryResponse(**summary.to_dict())
