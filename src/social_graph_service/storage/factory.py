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
Storage backend factory for the Social Graph Service.

Creates the fallback collection DB and wires both relationship stores
behind a BackendSelector.
"""

import logging

from ..config import FallbackSettings
from ..graph.client import GraphClient
from ..graph.health import HealthMonitor
from .collection_db import CollectionDB
from .flat_store import FlatRelationshipStore
from .graph_store import GraphRelationshipStore
from .selector import BackendSelector

logger = logging.getLogger(__name__)


async def create_collection_db(config: FallbackSettings | None = None) -> CollectionDB:
    """
    Create and initialize the fallback collection database.

    Returns:
        Initialized CollectionDB instance
    """
    from ..config import settings

    config = config or settings.fallback
    db = CollectionDB(str(config.db_path), cache_enabled=config.cache_enabled)
    await db.initialize()
    return db


def create_selector(db: CollectionDB, client: GraphClient | None, monitor: HealthMonitor) -> BackendSelector:
    """Build the per-call selector over the flat store and, if enabled, the graph store."""
    graph_store = GraphRelationshipStore(client) if client is not None else None
    selector = BackendSelector(monitor, FlatRelationshipStore(db), graph_store)
    logger.info(f"Backend selector ready (graph store {'enabled' if graph_store else 'disabled'})")
    return selector
