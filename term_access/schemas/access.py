from pydantic import BaseModel, Field

from term_access.constants import AccessResult, Operation


class TermPermissionsUpdate(BaseModel):
    user_ids: list[int] = Field(default_factory=list, description="Users allowed on the term")
    role_ids: list[str] = Field(default_factory=list, description="Roles allowed on the term")


class TermPermissionsResponse(BaseModel):
    term_id: int
    user_ids: list[int]
    role_ids: list[str]
    restricted: bool


class ChangeSetResponse(BaseModel):
    term_id: int
    changed: bool
    added_user_ids: list[int]
    removed_user_ids: list[int]
    added_role_ids: list[str]
    removed_role_ids: list[str]


class TermLookupResponse(BaseModel):
    term_id: int
    name: str


class AccessCheckResponse(BaseModel):
    content_item_id: int
    operation: Operation
    result: AccessResult


class GidsResponse(BaseModel):
    operation: Operation
    gids: list[int]


class GrantRecordResponse(BaseModel):
    content_item_id: int
    gid: int
    grant_view: bool
    grant_update: bool
    grant_delete: bool
    language: str
    realm: str
    fallback: bool


class RebuildSummaryResponse(BaseModel):
    content_items: int
    policies: int
    retired_gids: list[int]


class UserCancelledResponse(BaseModel):
    user_id: int
    term_ids: list[int]
