"""
PAGEGRAPH - Causal history of a browser page load as a graph.

This package provides:
- The taxonomy of node and edge kinds (ontology)
- The in-memory graph store (PageGraph)
- Query, provenance and causal-trace functions over a built graph
"""

from pagegraph.ontology import NodeType, EdgeType, NodeVariant, EdgeVariant
from pagegraph.schemas import (
    NodeId,
    EdgeId,
    Node,
    Edge,
    Direction,
    IdAllocator,
    UNKNOWN_TIMESTAMP,
)
from pagegraph.graph_db import (
    PageGraph,
    create_page_graph,
    GraphError,
    NodeNotFoundError,
    EdgeNotFoundError,
    DuplicateNodeError,
    DuplicateEdgeError,
    GraphInvariantError,
    NodeKindError,
    MissingTimestampError,
    UnsupportedNodeKindError,
)
from pagegraph.queries import (
    filter_nodes,
    filter_edges,
    nodes_of_html_tag,
    nodes_of_type,
    edges_of_type,
    node_table,
    edge_table,
)
from pagegraph.domains import InvalidDomainError, registrable_domain
from pagegraph.provenance import (
    modification_history,
    resources_from_script,
    root_url,
    resources_matching_filter,
)
from pagegraph.causality import direct_effects, all_downstream_effects
from pagegraph.graph_invariants import validate_page_graph

__all__ = [
    "NodeType",
    "EdgeType",
    "NodeVariant",
    "EdgeVariant",
    "NodeId",
    "EdgeId",
    "Node",
    "Edge",
    "Direction",
    "IdAllocator",
    "UNKNOWN_TIMESTAMP",
    "PageGraph",
    "create_page_graph",
    "GraphError",
    "NodeNotFoundError",
    "EdgeNotFoundError",
    "DuplicateNodeError",
    "DuplicateEdgeError",
    "GraphInvariantError",
    "NodeKindError",
    "MissingTimestampError",
    "UnsupportedNodeKindError",
    "filter_nodes",
    "filter_edges",
    "nodes_of_html_tag",
    "nodes_of_type",
    "edges_of_type",
    "node_table",
    "edge_table",
    "InvalidDomainError",
    "registrable_domain",
    "modification_history",
    "resources_from_script",
    "root_url",
    "resources_matching_filter",
    "direct_effects",
    "all_downstream_effects",
    "validate_page_graph",
]
