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
Connection endpoints for the HTTP interface.

Search, connection requests (send / list / respond), established
connections (list / remove) and backend health. The acting user is the
``X-User-Id`` header value.
"""

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...errors import SocialGraphError
from ...graph.health import HealthMonitor
from ...models.connection import ConnectionView, PendingRequestView, UserProfile
from ...models.validators import MAX_TYPE_LENGTH
from ...services.connection_service import ConnectionService
from ..dependencies import get_connection_service, get_current_user, get_health_monitor, to_http_exception

router = APIRouter(tags=["connections"])
logger = logging.getLogger(__name__)


# Request/Response Models
class SendRequestBody(BaseModel):
    """Request model for sending a connection request."""

    to_user_id: str = Field(..., description="User the request is addressed to")
    type: str = Field(..., max_length=MAX_TYPE_LENGTH, description="Requested connection type, e.g. 'Work' or 'Social'")


class SendRequestResponse(BaseModel):
    success: bool
    request_id: str
    message: str


class RespondBody(BaseModel):
    """Request model for accepting or rejecting a connection request."""

    request_id: str = Field(..., description="Connection request id")
    action: Literal["accept", "reject"] = Field(..., description="'accept' or 'reject'")
    type: str | None = Field(None, max_length=MAX_TYPE_LENGTH, description="Override the connection type on accept")


class OperationResponse(BaseModel):
    success: bool
    message: str


class UserSearchResponse(BaseModel):
    users: list[UserProfile]
    total: int


class ConnectionListResponse(BaseModel):
    connections: list[ConnectionView]
    total: int


class PendingRequestListResponse(BaseModel):
    requests: list[PendingRequestView]
    total: int


class HealthResponse(BaseModel):
    graph_enabled: bool
    graph_healthy: bool
    active_backend: str
    checked_at: float | None = None
    timestamp: datetime = Field(default_factory=datetime.now)


@router.get("/search", response_model=UserSearchResponse)
async def search_users(
    q: str = Query("", description="Username or name fragment (at least 2 characters)"),
    user_id: str = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
) -> UserSearchResponse:
    """Search the user directory, excluding the caller."""
    users = await service.search_users(q, user_id)
    return UserSearchResponse(users=users, total=len(users))


@router.get("/list", response_model=ConnectionListResponse)
async def list_connections(
    user_id: str = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
) -> ConnectionListResponse:
    """List the caller's established connections."""
    connections = await service.list_connections(user_id)
    return ConnectionListResponse(connections=connections, total=len(connections))


@router.get("/requests", response_model=PendingRequestListResponse)
async def list_pending_requests(
    user_id: str = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
) -> PendingRequestListResponse:
    """List pending connection requests addressed to the caller."""
    requests = await service.list_pending_requests(user_id)
    return PendingRequestListResponse(requests=requests, total=len(requests))


@router.post("/request", response_model=SendRequestResponse)
async def send_request(
    body: SendRequestBody,
    user_id: str = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
) -> SendRequestResponse:
    """Send a connection request from the caller to ``to_user_id``."""
    try:
        request_id = await service.send_request(user_id, body.to_user_id, body.type)
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    return SendRequestResponse(success=True, request_id=request_id, message="Connection request sent")


@router.post("/respond", response_model=OperationResponse)
async def respond_to_request(
    body: RespondBody,
    user_id: str = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
) -> OperationResponse:
    """Accept or reject a pending connection request addressed to the caller."""
    try:
        await service.respond_to_request(body.request_id, user_id, body.action, override_type=body.type)
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    message = "Connection request accepted" if body.action == "accept" else "Connection request rejected"
    return OperationResponse(success=True, message=message)


@router.delete("/connections/{target_id}", response_model=OperationResponse)
async def remove_connection(
    target_id: str,
    user_id: str = Depends(get_current_user),
    service: ConnectionService = Depends(get_connection_service),
) -> OperationResponse:
    """Remove the caller's connection with ``target_id``."""
    try:
        await service.remove_connection(user_id, target_id)
    except SocialGraphError as e:
        raise to_http_exception(e) from e
    return OperationResponse(success=True, message="Connection removed")


@router.get("/health", response_model=HealthResponse)
async def backend_health(monitor: HealthMonitor = Depends(get_health_monitor)) -> HealthResponse:
    """Report graph reachability and which backend is currently serving calls."""
    healthy = await monitor.is_healthy()
    logger.debug(f"Health check: graph_enabled={monitor.enabled} healthy={healthy}")
    return HealthResponse(
        graph_enabled=monitor.enabled,
        graph_healthy=healthy,
        active_backend="graph" if healthy else "fallback",
        checked_at=monitor.checked_at,
    )
