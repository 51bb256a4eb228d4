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

"""Audit logging models for tracking relationship mutations."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AuditLog:
    """Represents a single relationship mutation for audit trail tracking."""

    operation: str  # SEND_REQUEST, ACCEPT_REQUEST, REMOVE_CONNECTION, APPROVE_TYPE_CHANGE, ...
    actor: str
    timestamp: float
    target: str | None = None  # counterpart user id
    request_id: str | None = None
    backend: str | None = None  # "graph" or "fallback"
    success: bool = True
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "operation": self.operation,
            "actor": self.actor,
            "timestamp": self.timestamp,
            "target": self.target,
            "request_id": self.request_id,
            "backend": self.backend,
            "success": self.success,
            "error": self.error,
            "metadata": self.metadata,
        }
