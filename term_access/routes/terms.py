"""
Term Permission Routes

Route table (under /api/v1/terms):
  GET  /resolve                 — term id for a name
  GET  /{term_id}/permissions   — allowed users and roles (manage capability)
  PUT  /{term_id}/permissions   — replace allowed users and roles (manage capability)
"""

from fastapi import APIRouter, Depends, Query

from term_access.auth import require_capability
from term_access.dependencies import get_access_hooks
from term_access.exceptions import TermNotFoundError
from term_access.models.term import Term
from term_access.schemas.access import (
    ChangeSetResponse,
    TermLookupResponse,
    TermPermissionsResponse,
    TermPermissionsUpdate,
)
from term_access.services.access_hooks import TermAccessHooks
from term_access.services.identity import Principal

router = APIRouter(tags=["Term Permissions"])


@router.get("/resolve", response_model=TermLookupResponse)
async def resolve_term(
    name: str = Query(..., min_length=1),
    vocabulary: str | None = Query(None),
    hooks: TermAccessHooks = Depends(get_access_hooks),
):
    term_id = await hooks.engine.hierarchy.resolve_id_by_name(name, vocabulary)
    return TermLookupResponse(term_id=term_id, name=name)


@router.get("/{term_id}/permissions", response_model=TermPermissionsResponse)
async def get_term_permissions(
    term_id: int,
    hooks: TermAccessHooks = Depends(get_access_hooks),
    _: Principal = Depends(require_capability("manage_capability")),
):
    if await hooks.db.get(Term, term_id) is None:
        raise TermNotFoundError(term_id)
    user_ids = await hooks.store.get_allowed_user_ids(term_id)
    role_ids = await hooks.store.get_allowed_role_ids(term_id)
    return TermPermissionsResponse(
        term_id=term_id,
        user_ids=user_ids,
        role_ids=role_ids,
        restricted=bool(user_ids or role_ids),
    )


@router.put("/{term_id}/permissions", response_model=ChangeSetResponse)
async def update_term_permissions(
    term_id: int,
    data: TermPermissionsUpdate,
    hooks: TermAccessHooks = Depends(get_access_hooks),
    _: Principal = Depends(require_capability("manage_capability")),
):
    """Replace the allowed users and roles of a term."""
    changes = await hooks.on_term_form_submit(term_id, data.user_ids, data.role_ids)
    return ChangeSetResponse(**changes.to_dict())
