from fastapi import APIRouter, Depends

from term_access.auth import require_capability
from term_access.dependencies import get_access_hooks
from term_access.schemas.access import UserCancelledResponse
from term_access.services.access_hooks import TermAccessHooks
from term_access.services.identity import Principal

router = APIRouter(tags=["Users"])


@router.post("/{user_id}/cancel", response_model=UserCancelledResponse)
async def cancel_user(
    user_id: int,
    hooks: TermAccessHooks = Depends(get_access_hooks),
    _: Principal = Depends(require_capability("manage_capability")),
):
    """Remove the user's term permissions after the host cancelled the account."""
    term_ids = await hooks.on_user_cancelled(user_id)
    return UserCancelledResponse(user_id=user_id, term_ids=term_ids)
