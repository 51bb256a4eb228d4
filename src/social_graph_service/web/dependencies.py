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
FastAPI dependencies for the HTTP interface.
"""

import logging

from fastapi import Header, HTTPException

from ..errors import (
    AlreadyConnectedError,
    AlreadyProcessedError,
    InputValidationError,
    NotConnectedError,
    NotFoundError,
    RequestAlreadyPendingError,
    SocialGraphError,
    TypeChangeAlreadyPendingError,
    UnauthorizedError,
)
from ..graph.health import HealthMonitor
from ..services.connection_service import ConnectionService
from ..services.type_change_service import TypeChangeService
from ..shared_storage import StorageManager

logger = logging.getLogger(__name__)


def get_connection_service() -> ConnectionService:
    """Get the shared ConnectionService."""
    service = StorageManager.get_instance().connection_service
    if service is None:
        raise HTTPException(status_code=503, detail="Storage not initialized")
    return service


def get_type_change_service() -> TypeChangeService:
    """Get the shared TypeChangeService."""
    service = StorageManager.get_instance().type_change_service
    if service is None:
        raise HTTPException(status_code=503, detail="Storage not initialized")
    return service


def get_current_user(x_user_id: str | None = Header(None)) -> str:
    """
    Resolve the acting user from the ``X-User-Id`` header.

    Authentication happens upstream; this service trusts the header.
    """
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def get_health_monitor() -> HealthMonitor:
    """Get the shared graph HealthMonitor."""
    monitor = StorageManager.get_instance().monitor
    if monitor is None:
        raise HTTPException(status_code=503, detail="Storage not initialized")
    return monitor


# Typed service errors -> HTTP status codes
_STATUS_BY_CODE = {
    NotFoundError.code: 404,
    AlreadyConnectedError.code: 409,
    RequestAlreadyPendingError.code: 409,
    NotConnectedError.code: 409,
    TypeChangeAlreadyPendingError.code: 409,
    AlreadyProcessedError.code: 409,
    UnauthorizedError.code: 403,
    InputValidationError.code: 400,
}


def to_http_exception(error: SocialGraphError) -> HTTPException:
    """Translate a service error into an HTTPException carrying its code."""
    status_code = _STATUS_BY_CODE.get(error.code, 500)
    return HTTPException(status_code=status_code, detail={"error": error.message, "code": error.code})
