# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Connection type change endpoints for the HTTP interface.

Either party of a connection proposes a new type; the other party
approves or rejects it. Resolved proposals remain listed as history.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...errors import SocialGraphError
from ...models.connection import TypeChangeRequest
from ...models.validators import MAX_TYPE_LENGTH
from ...services.type_change_service import TypeChangeService
from ..dependencies import get_current_user, get_type_change_service, to_http_exception

router = APIRouter(prefix="/type-changes", tags=["type-changes"])
logger = logging.getLogger(__name__)


class ProposeTypeChangeBody(BaseModel):
    """Request model for proposing a connection type change."""

    to_user_id: str = Field(..., description="The other party of the connection")
    proposed_type: str = Field(..., max_length=MAX_TYPE_LENGTH, description="New connection type")
    proposed_sub_type: str | None = Field(None, description="Optional new sub-type")


class ProposeTypeChangeResponse(BaseModel):
    success: bool
    request_id: str
    message: str


class RespondTypeChangeBody(BaseModel):
    action: Literal["approve", "reject"] = Field(..., description="'approve' or 'reject'")


class TypeChangeResponse(BaseModel):
    success: bool
    message: str
    request: TypeChangeRequest


class TypeChangeListResponse(BaseModel):
    requests: list[TypeChangeRequest]
    total: int


@router.post("", response_model=ProposeTypeChangeResponse)
async def propose_type_change(
    body: ProposeTypeChangeBody,
    user_id: str = Depends(get_current_user),
    service: TypeChangeService = Depends(get_type_change_service),
) -> ProposeTypeChangeResponse:
    """Propose a new type for the caller's connection with ``to_user_id``."""
    try:
        request_id = await service.propose_type_change(
            user_id, body.to_user_id, body.proposed_type, body.proposed_sub_type
        )
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    return ProposeTypeChangeResponse(success=True, request_id=request_id, message="Type change proposed")


@router.get("/pending", response_model=TypeChangeListResponse)
async def list_pending_type_changes(
    user_id: str = Depends(get_current_user),
    service: TypeChangeService = Depends(get_type_change_service),
) -> TypeChangeListResponse:
    """Pending proposals awaiting the caller's decision."""
    requests = await service.list_pending_type_changes(user_id)
    return TypeChangeListResponse(requests=requests, total=len(requests))


@router.get("", response_model=TypeChangeListResponse)
async def list_all_type_change_requests(
    user_id: str = Depends(get_current_user),
    service: TypeChangeService = Depends(get_type_change_service),
) -> TypeChangeListResponse:
    """Every proposal the caller sent or received."""
    requests = await service.list_all_type_change_requests(user_id)
    return TypeChangeListResponse(requests=requests, total=len(requests))


@router.post("/{request_id}/respond", response_model=TypeChangeResponse)
async def respond_to_type_change(
    request_id: str,
    body: RespondTypeChangeBody,
    user_id: str = Depends(get_current_user),
    service: TypeChangeService = Depends(get_type_change_service),
) -> TypeChangeResponse:
    """Approve or reject a proposal addressed to the caller."""
    try:
        resolved = await service.respond_to_type_change(request_id, user_id, body.action)
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    return TypeChangeResponse(success=True, message=f"Type change {resolved.status}", request=resolved)
