"""
PAGEGRAPH QUERY LAYER - Predicate scans over the store

All functions are full scans of the node or edge mapping. Result order
follows mapping iteration and carries no meaning; sort by id when a
deterministic order is needed.
"""
from typing import Callable, List, Tuple

import polars as pl

from pagegraph.graph_db import PageGraph
from pagegraph.ontology import EdgeType, EdgeVariant, HtmlElement, NodeType, NodeVariant
from pagegraph.schemas import Edge, EdgeId, Node, NodeId

NodeRef = Tuple[NodeId, Node]
EdgeRef = Tuple[EdgeId, Edge]


def filter_nodes(graph: PageGraph, predicate: Callable[[NodeVariant], bool]) -> List[NodeRef]:
    """Nodes whose kind satisfies predicate."""
    return [(node_id, node) for node_id, node in graph.iter_nodes() if predicate(node.kind)]


def filter_edges(graph: PageGraph, predicate: Callable[[EdgeVariant], bool]) -> List[EdgeRef]:
    """Edges whose kind satisfies predicate."""
    return [(edge_id, edge) for edge_id, edge in graph.iter_edges() if predicate(edge.kind)]


def nodes_of_html_tag(graph: PageGraph, tag_name: str) -> List[NodeRef]:
    """HTML element nodes with exactly this tag name (case-sensitive)."""
    return filter_nodes(
        graph,
        lambda kind: isinstance(kind, HtmlElement) and kind.tag_name == tag_name,
    )


def nodes_of_type(graph: PageGraph, *node_types: NodeType) -> List[NodeRef]:
    """Nodes of any of the given kinds."""
    wanted = frozenset(node_types)
    return filter_nodes(graph, lambda kind: kind.type in wanted)


def edges_of_type(graph: PageGraph, *edge_types: EdgeType) -> List[EdgeRef]:
    """Edges of any of the given kinds."""
    wanted = frozenset(edge_types)
    return filter_edges(graph, lambda kind: kind.type in wanted)


# =============================================================================
# TABULAR VIEWS (Polars)
# =============================================================================

def node_table(graph: PageGraph) -> pl.DataFrame:
    """
    One row per node: id, timestamp, type. Sorted by id.

    Useful for quick aggregations, e.g.
        node_table(graph).group_by("type").len()
    """
    rows = sorted(graph.iter_nodes(), key=lambda ref: ref[0])
    return pl.DataFrame(
        {
            "id": [node_id for node_id, _ in rows],
            "timestamp": [node.timestamp for _, node in rows],
            "type": [node.kind.type.value for _, node in rows],
        },
        schema={"id": pl.Int64, "timestamp": pl.Int64, "type": pl.Utf8},
    )


def edge_table(graph: PageGraph) -> pl.DataFrame:
    """
    One row per edge: id, source, target, timestamp, type, reachable.

    `reachable` is False for edges shadowed in the adjacency index.
    """
    rows = sorted(graph.iter_edges(), key=lambda ref: ref[0])
    shadowed = graph.shadowed_edges()
    endpoints = [graph.edge_endpoints(edge_id) for edge_id, _ in rows]
    return pl.DataFrame(
        {
            "id": [edge_id for edge_id, _ in rows],
            "source": [src for src, _ in endpoints],
            "target": [tgt for _, tgt in endpoints],
            "timestamp": [edge.timestamp for _, edge in rows],
            "type": [edge.kind.type.value for _, edge in rows],
            "reachable": [edge_id not in shadowed for edge_id, _ in rows],
        },
        schema={
            "id": pl.Int64,
            "source": pl.Int64,
            "target": pl.Int64,
            "timestamp": pl.Int64,
            "type": pl.Utf8,
            "reachable": pl.Boolean,
        },
    )
