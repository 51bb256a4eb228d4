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
FastAPI application for the Social Graph Service.

Shares the StorageManager singleton with the MCP server, so running both
in one process uses one fallback database, one graph pool and one health
verdict.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..shared_storage import close_shared_storage, initialize_shared_storage
from .api import connections, type_changes

logger = logging.getLogger(__name__)

API_PREFIX = "/api/connect"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize shared storage on startup and release it on shutdown."""
    logger.info("Starting Social Graph Service HTTP interface...")
    await initialize_shared_storage()
    try:
        yield
    finally:
        logger.info("Shutting down Social Graph Service HTTP interface...")
        await close_shared_storage()


def create_app() -> FastAPI:
    """Build the FastAPI application with all routers mounted."""
    application = FastAPI(title="Social Graph Service", lifespan=lifespan)
    application.include_router(connections.router, prefix=API_PREFIX)
    application.include_router(type_changes.router, prefix=API_PREFIX)
    return application


app = create_app()


def main():
    """Run the HTTP interface with uvicorn."""
    import uvicorn

    from ..config import settings

    logging.basicConfig(level=getattr(logging, settings.server.log_level))
    logger.info(f"Starting Social Graph HTTP API on {settings.server.host}:{settings.server.port}")
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)
