"""
PAGEGRAPH SCHEMAS - The Grammar of a Page Load

If ontology.py is the Dictionary (the kinds of things a page load produces),
schemas.py is the Grammar (how a node or an edge is put together).

This module defines the records stored in the graph:
- NodeId / EdgeId: opaque integer handles
- IdAllocator: hands out fresh handles during ingestion
- Node: timestamp + node variant
- Edge: optional timestamp + edge variant
- Direction: which way to look along the adjacency index

Design Principles:
1. IMMUTABLE RECORDS: Node and Edge are frozen; identity is the handle,
   never the content
2. KW_ONLY: keyword construction only, no positional mix-ups
3. OPAQUE IDS: NodeId/EdgeId support comparison, hashing and ordering and
   nothing else
"""
from enum import Enum
from typing import NewType, Optional

import msgspec

from pagegraph.ontology import EdgeVariant, NodeVariant


NodeId = NewType("NodeId", int)
EdgeId = NewType("EdgeId", int)

# Node timestamp used when the recorder had no time for the node (e.g. the root)
UNKNOWN_TIMESTAMP = -1


class Direction(str, Enum):
    """Direction along the adjacency index, relative to the queried node."""
    INCOMING = "incoming"
    OUTGOING = "outgoing"


# =============================================================================
# IDENTIFIER ALLOCATOR
# =============================================================================

class IdAllocator:
    """
    Strictly increasing handle source for nodes and edges.

    Ingestion may supply its own ids (the recorder numbers nodes and edges);
    reserve_* keeps the counters ahead of those so freshly allocated handles
    never collide with them.
    """

    def __init__(self, start: int = 0):
        self._next_node = start
        self._next_edge = start

    def next_node_id(self) -> NodeId:
        node_id = NodeId(self._next_node)
        self._next_node += 1
        return node_id

    def next_edge_id(self) -> EdgeId:
        edge_id = EdgeId(self._next_edge)
        self._next_edge += 1
        return edge_id

    def reserve_node(self, node_id: int) -> None:
        self._next_node = max(self._next_node, node_id + 1)

    def reserve_edge(self, edge_id: int) -> None:
        self._next_edge = max(self._next_edge, edge_id + 1)


# =============================================================================
# NODE / EDGE RECORDS
# =============================================================================

class Node(msgspec.Struct, kw_only=True, frozen=True):
    """
    A side effect of the page load.

    `timestamp` is the recorder's clock value, or UNKNOWN_TIMESTAMP.
    `kind` is the variant from ontology.py; match on `kind.type`.
    """
    timestamp: int = UNKNOWN_TIMESTAMP
    kind: NodeVariant

    @property
    def type(self):
        return self.kind.type


class Edge(msgspec.Struct, kw_only=True, frozen=True):
    """
    An action taken during the page load.

    `timestamp` is None only for synthetic/structural edges.
    """
    timestamp: Optional[int] = None
    kind: EdgeVariant

    @property
    def type(self):
        return self.kind.type
