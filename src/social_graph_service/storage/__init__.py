"""Relationship storage: graph store, flat fallback store and the selector between them."""

from .base import RelationshipStore
from .collection_db import CollectionDB
from .flat_store import FlatRelationshipStore
from .graph_store import GraphRelationshipStore
from .selector import BackendSelector
from .type_change_repository import TypeChangeRepository

__all__ = [
    "BackendSelector",
    "CollectionDB",
    "FlatRelationshipStore",
    "GraphRelationshipStore",
    "RelationshipStore",
    "TypeChangeRepository",
]
