"""
Social Graph Service.

Connection requests, symmetric connections and mutually-approved
connection type changes over a FalkorDB graph, with a flat SQLite
fallback store that keeps every operation available while the graph is
unreachable.
"""

__version__ = "0.1.0"
