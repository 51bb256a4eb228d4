#!/usr/bin/env python3
"""FastMCP Server for the Social Graph Service.

Exposes the connection and type-change operations as MCP tools. Every
tool returns a dict: ``{"success": True, ...}`` on success, or
``{"success": False, "error": ..., "code": ...}`` carrying the typed
error's stable code. The acting user is passed explicitly; identity is
established upstream.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastmcp import Context, FastMCP

from .errors import SocialGraphError
from .graph.health import HealthMonitor
from .services.connection_service import ConnectionService
from .services.type_change_service import TypeChangeService

logger = logging.getLogger(__name__)


def _failure(error: SocialGraphError) -> dict[str, Any]:
    return {"success": False, "error": error.message, "code": error.code}


@dataclass
class MCPServerContext:
    """Application context for the MCP server with all required components."""

    connection_service: ConnectionService
    type_change_service: TypeChangeService
    monitor: HealthMonitor


@asynccontextmanager
async def mcp_server_lifespan(server: FastMCP) -> AsyncIterator[MCPServerContext]:
    """Manage MCP server lifecycle with proper resource initialization and cleanup."""
    from .shared_storage import StorageManager

    manager = StorageManager.get_instance()
    owns_storage = not manager.is_initialized()
    if owns_storage:
        logger.info("No shared storage found, initializing new instance (standalone mode)")
    else:
        logger.debug("Using pre-initialized shared storage instance")

    connection_service = await manager.get_connection_service()
    type_change_service = await manager.get_type_change_service()

    try:
        yield MCPServerContext(
            connection_service=connection_service,
            type_change_service=type_change_service,
            monitor=manager.monitor,
        )
    finally:
        if owns_storage:
            logger.info("Shutting down Social Graph Service components...")
            await manager.close()


# Create FastMCP server instance
mcp = FastMCP("Social Graph Service", lifespan=mcp_server_lifespan)


# =============================================================================
# CONNECTION REQUESTS
# =============================================================================


@mcp.tool()
async def search_users(user_id: str, query: str, ctx: Context) -> dict[str, Any]:
    """Search the user directory by username or name.

    Args:
        user_id: Acting user (excluded from the results)
        query: Search text, at least 2 characters

    Returns:
        {success, users, total}. At most 10 users.
    """
    service = ctx.request_context.lifespan_context.connection_service
    users = await service.search_users(query, user_id)
    return {"success": True, "users": [u.model_dump(mode="json") for u in users], "total": len(users)}


@mcp.tool()
async def send_connection_request(from_user_id: str, to_user_id: str, type: str, ctx: Context) -> dict[str, Any]:
    """Send a connection request.

    Args:
        from_user_id: Acting user
        to_user_id: User the request is addressed to
        type: Requested connection type (e.g. "Work", "Social")

    Returns:
        {success, request_id} or {success: False, error, code} where code is
        AlreadyConnected, RequestAlreadyPending or ValidationError.
    """
    service = ctx.request_context.lifespan_context.connection_service
    try:
        request_id = await service.send_request(from_user_id, to_user_id, type)
    except SocialGraphError as e:
        return _failure(e)
    return {"success": True, "request_id": request_id, "message": "Connection request sent"}


@mcp.tool()
async def list_pending_requests(user_id: str, ctx: Context) -> dict[str, Any]:
    """List pending connection requests addressed to a user, with sender display info."""
    service = ctx.request_context.lifespan_context.connection_service
    requests = await service.list_pending_requests(user_id)
    return {"success": True, "requests": [r.model_dump(mode="json") for r in requests], "total": len(requests)}


@mcp.tool()
async def respond_to_request(
    request_id: str,
    user_id: str,
    action: str,
    ctx: Context,
    type: str | None = None,
) -> dict[str, Any]:
    """Accept or reject a pending connection request.

    Args:
        request_id: Connection request id
        user_id: Acting user; must be the request's recipient
        action: "accept" or "reject"
        type: Optional connection type overriding the requested one on accept

    Returns:
        {success, message} or {success: False, error, code}.
    """
    service = ctx.request_context.lifespan_context.connection_service
    try:
        await service.respond_to_request(request_id, user_id, action, override_type=type)
    except SocialGraphError as e:
        return _failure(e)
    return {"success": True, "message": f"Connection request {action}ed"}


# =============================================================================
# CONNECTIONS
# =============================================================================


@mcp.tool()
async def list_connections(user_id: str, ctx: Context) -> dict[str, Any]:
    """List a user's established connections with counterpart display info."""
    service = ctx.request_context.lifespan_context.connection_service
    connections = await service.list_connections(user_id)
    return {
        "success": True,
        "connections": [c.model_dump(mode="json") for c in connections],
        "total": len(connections),
    }


@mcp.tool()
async def remove_connection(user_id: str, target_user_id: str, ctx: Context) -> dict[str, Any]:
    """Remove the connection between two users.

    Returns:
        {success, message} or {success: False, error, code="NotFound"} when
        the users were not connected.
    """
    service = ctx.request_context.lifespan_context.connection_service
    try:
        await service.remove_connection(user_id, target_user_id)
    except SocialGraphError as e:
        return _failure(e)
    return {"success": True, "message": "Connection removed"}


# =============================================================================
# TYPE CHANGES
# =============================================================================


@mcp.tool()
async def propose_type_change(
    from_user_id: str,
    to_user_id: str,
    proposed_type: str,
    ctx: Context,
    proposed_sub_type: str | None = None,
) -> dict[str, Any]:
    """Propose a new type for an existing connection; the other user must approve.

    Returns:
        {success, request_id} or {success: False, error, code} where code is
        NotConnected, AlreadyPending or ValidationError.
    """
    service = ctx.request_context.lifespan_context.type_change_service
    try:
        request_id = await service.propose_type_change(from_user_id, to_user_id, proposed_type, proposed_sub_type)
    except SocialGraphError as e:
        return _failure(e)
    return {"success": True, "request_id": request_id, "message": "Type change proposed"}


@mcp.tool()
async def list_pending_type_changes(user_id: str, ctx: Context) -> dict[str, Any]:
    """List pending type change proposals awaiting a user's decision."""
    service = ctx.request_context.lifespan_context.type_change_service
    requests = await service.list_pending_type_changes(user_id)
    return {"success": True, "requests": [r.model_dump(mode="json") for r in requests], "total": len(requests)}


@mcp.tool()
async def list_type_change_requests(user_id: str, ctx: Context) -> dict[str, Any]:
    """List every type change proposal a user sent or received, any status."""
    service = ctx.request_context.lifespan_context.type_change_service
    requests = await service.list_all_type_change_requests(user_id)
    return {"success": True, "requests": [r.model_dump(mode="json") for r in requests], "total": len(requests)}


@mcp.tool()
async def respond_to_type_change(request_id: str, user_id: str, action: str, ctx: Context) -> dict[str, Any]:
    """Approve or reject a type change proposal.

    Args:
        request_id: Type change request id
        user_id: Acting user; must be the proposal's recipient
        action: "approve" or "reject"

    Returns:
        {success, request} or {success: False, error, code} where code is
        NotFound, Unauthorized, AlreadyProcessed or ValidationError.
    """
    service = ctx.request_context.lifespan_context.type_change_service
    try:
        resolved = await service.respond_to_type_change(request_id, user_id, action)
    except SocialGraphError as e:
        return _failure(e)
    return {"success": True, "request": resolved.model_dump(mode="json")}


# =============================================================================
# OPERATIONS
# =============================================================================


@mcp.tool()
async def get_backend_health(ctx: Context) -> dict[str, Any]:
    """Report graph reachability and which backend is currently serving calls."""
    monitor = ctx.request_context.lifespan_context.monitor
    healthy = await monitor.is_healthy()
    return {
        "success": True,
        "graph_enabled": monitor.enabled,
        "graph_healthy": healthy,
        "active_backend": "graph" if healthy else "fallback",
    }


@mcp.tool()
async def get_audit_trail(
    ctx: Context,
    limit: int = 100,
    operation: str | None = None,
    actor: str | None = None,
) -> dict[str, Any]:
    """Get recent relationship mutations, newest first.

    Args:
        limit: Maximum entries to return
        operation: Filter by operation, e.g. SEND_REQUEST or APPROVE_TYPE_CHANGE
        actor: Filter by acting user
    """
    service = ctx.request_context.lifespan_context.connection_service
    return {"success": True, **service.get_audit_trail(limit=limit, operation=operation, actor=actor)}


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def main():
    """Main entry point for the Social Graph MCP server."""
    from .config import settings

    logging.basicConfig(level=getattr(logging, settings.server.log_level))

    host = settings.server.host
    port = settings.server.port
    logger.info(f"Starting Social Graph MCP server ({settings.server.transport}) on {host}:{port}")

    if settings.server.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport="http", host=host, port=port, stateless_http=True)


if __name__ == "__main__":
    main()
