"""Typed errors raised by the connection and type-change services.

Every error carries a stable ``code`` so callers (HTTP routes, MCP tools)
can tell "already done" from "not allowed" from "transient" without
parsing messages.
"""


class SocialGraphError(Exception):
    """Base class for all service errors."""

    code = "SocialGraphError"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(SocialGraphError):
    """The addressed request or connection does not exist."""

    code = "NotFound"


class AlreadyConnectedError(SocialGraphError):
    """A connection already exists for the pair."""

    code = "AlreadyConnected"

    def __init__(self, user_a: str, user_b: str):
        self.user_a = user_a
        self.user_b = user_b
        super().__init__(f"Users '{user_a}' and '{user_b}' are already connected")


class RequestAlreadyPendingError(SocialGraphError):
    """A pending connection request already exists for the pair (either direction)."""

    code = "RequestAlreadyPending"

    def __init__(self, user_a: str, user_b: str):
        self.user_a = user_a
        self.user_b = user_b
        super().__init__(f"A connection request between '{user_a}' and '{user_b}' is already pending")


class NotConnectedError(SocialGraphError):
    """A type change was proposed for a pair without a connection."""

    code = "NotConnected"

    def __init__(self, user_a: str, user_b: str):
        self.user_a = user_a
        self.user_b = user_b
        super().__init__(f"Users '{user_a}' and '{user_b}' are not connected")


class TypeChangeAlreadyPendingError(SocialGraphError):
    """Another type change request is pending for the pair."""

    code = "AlreadyPending"

    def __init__(self, user_a: str, user_b: str):
        self.user_a = user_a
        self.user_b = user_b
        super().__init__(f"A type change request is already pending for '{user_a}' and '{user_b}'")


class AlreadyProcessedError(SocialGraphError):
    """The type change request has already been approved or rejected."""

    code = "AlreadyProcessed"

    def __init__(self, request_id: str, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__(f"Request '{request_id}' has already been processed (status={status})")


class UnauthorizedError(SocialGraphError):
    """The caller is not the designated recipient of the request."""

    code = "Unauthorized"


class InputValidationError(SocialGraphError):
    """A required field is missing or a value is not acceptable."""

    code = "ValidationError"


class BackendUnavailableError(SocialGraphError):
    """The graph backend could not be reached mid-call.

    Internal signal only: consumed by the backend selector, which fails the
    call over to the fallback store. Never surfaced to callers.
    """

    code = "BackendUnavailable"
