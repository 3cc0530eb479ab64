"""
PAGEGRAPH GRAPH STORE - The Page Load in Memory

Owns every node and edge of one recorded page load and the directed
adjacency index used by all queries. It bridges the opaque NodeId/EdgeId
handles with rustworkx's integer indices:

  Python Layer (Queries)
  - Uses NodeId / EdgeId handles issued at ingestion
  - Calls: graph.node(nid), graph.edges_incident(nid, Direction.INCOMING)

  Bridge Layer (This File)
  - _node_map: Dict[NodeId, int]   (handle -> rustworkx index)
  - _inv_map:  Dict[int, NodeId]   (rustworkx index -> handle)
  - _edge_map: Dict[(NodeId, NodeId), EdgeId]  (ordered pair -> edge)

  Rust Layer (rustworkx.PyDiGraph)
  - Node payload: NodeId. Edge payload: EdgeId.

Lifecycle:
  Ingestion calls add_node/add_edge once per record, then hands the graph
  to the read-only query modules. Nothing mutates it afterwards.

Adjacency Limitation:
  By default (multigraph=False) the adjacency index keeps ONE edge per
  ordered pair of endpoints. Registering a second edge between the same
  pair makes the new edge reachable and leaves the old one in the edge
  mapping only ("shadowed"). Traversal-based queries then see the newer
  edge alone. Build with multigraph=True to keep parallel edges reachable.
"""
import logging
from typing import Dict, Iterator, List, Optional, Set, Tuple

import rustworkx as rx

from infrastructure.config import Settings, get_settings
from pagegraph.schemas import Direction, Edge, EdgeId, IdAllocator, Node, NodeId

logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================

class GraphError(Exception):
    """Base exception for page graph operations."""
    pass


class NodeNotFoundError(GraphError):
    """Raised when a node id is not in the graph."""
    def __init__(self, node_id: NodeId):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class EdgeNotFoundError(GraphError):
    """Raised when an edge id is not in the graph."""
    def __init__(self, edge_id: EdgeId):
        self.edge_id = edge_id
        super().__init__(f"Edge not found: {edge_id}")


class DuplicateNodeError(GraphError):
    """Raised when ingestion registers the same node id twice."""
    def __init__(self, node_id: NodeId):
        self.node_id = node_id
        super().__init__(f"Node already exists: {node_id}")


class DuplicateEdgeError(GraphError):
    """Raised when ingestion registers the same edge id twice."""
    def __init__(self, edge_id: EdgeId):
        self.edge_id = edge_id
        super().__init__(f"Edge already exists: {edge_id}")


class GraphInvariantError(GraphError):
    """
    Raised when a precondition the caller (or ingestion) was responsible
    for does not hold. Never coerced into an empty result.
    """
    pass


class NodeKindError(GraphInvariantError):
    """Raised when a kind-specific query receives a node of another kind."""
    def __init__(self, node_id: NodeId, node: Node, expected: str):
        self.node_id = node_id
        self.node = node
        super().__init__(
            f"Node {node_id} is {node.kind.type.value}, expected {expected}"
        )


class MissingTimestampError(GraphInvariantError):
    """Raised when an edge that must carry a timestamp has none."""
    def __init__(self, edge_id: EdgeId, edge: Edge):
        self.edge_id = edge_id
        self.edge = edge
        super().__init__(
            f"Edge {edge_id} ({edge.kind.type.value}) has no timestamp"
        )


class UnsupportedNodeKindError(GraphInvariantError, NotImplementedError):
    """Raised when causal tracing reaches a node kind it does not model."""
    def __init__(self, node_id: NodeId, node: Node):
        self.node_id = node_id
        self.node = node
        super().__init__(
            f"Causal tracing is not modeled for {node.kind.type.value} "
            f"(node {node_id})"
        )


# =============================================================================
# PAGE GRAPH (The Store)
# =============================================================================

class PageGraph:
    """
    In-memory page-load graph backed by rustworkx.

    Usage:
        graph = PageGraph()

        # Ingestion
        root = graph.add_node(Node(kind=DomRoot(url="https://a.test/")))
        el = graph.add_node(Node(timestamp=5, kind=HtmlElement(tag_name="div")))
        graph.add_edge(root, el, Edge(kind=Structure()))

        # Queries
        graph.neighbors(root, Direction.OUTGOING)   # {el}
        graph.edges_incident(el, Direction.INCOMING)

    Thread Safety:
        Safe for any number of concurrent readers once ingestion has
        finished. Ingestion itself is not thread-safe.
    """

    def __init__(self, multigraph: bool = False):
        """
        Initialize an empty page graph.

        Args:
            multigraph: If True, keep every edge between the same ordered
                        pair reachable. Default False: one edge per pair.
        """
        self._multigraph = multigraph
        self._graph: rx.PyDiGraph = rx.PyDiGraph(multigraph=multigraph)

        # Record storage
        self._nodes: Dict[NodeId, Node] = {}
        self._edges: Dict[EdgeId, Edge] = {}
        self._edge_endpoints: Dict[EdgeId, Tuple[NodeId, NodeId]] = {}

        # The Bridge
        self._node_map: Dict[NodeId, int] = {}
        self._inv_map: Dict[int, NodeId] = {}

        # Adjacency index: ordered pair -> last registered edge
        self._edge_map: Dict[Tuple[NodeId, NodeId], EdgeId] = {}

        # Edges no longer reachable through adjacency: shadowed -> replacement
        self._shadowed: Dict[EdgeId, EdgeId] = {}

        self._ids = IdAllocator()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def node_count(self) -> int:
        """Number of nodes in the graph."""
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        """Number of edges in the edge mapping (shadowed edges included)."""
        return len(self._edges)

    @property
    def multigraph(self) -> bool:
        return self._multigraph

    # =========================================================================
    # INGESTION
    # =========================================================================

    def add_node(self, node: Node, node_id: Optional[int] = None) -> NodeId:
        """
        Register a node.

        Args:
            node: The node record
            node_id: Handle assigned by the recorder. Allocated if None.

        Returns:
            The node's handle

        Raises:
            DuplicateNodeError: If node_id is already registered
        """
        if node_id is None:
            node_id = self._ids.next_node_id()
        else:
            node_id = NodeId(node_id)
            if node_id in self._nodes:
                raise DuplicateNodeError(node_id)
            self._ids.reserve_node(node_id)

        idx = self._graph.add_node(node_id)
        self._nodes[node_id] = node
        self._node_map[node_id] = idx
        self._inv_map[idx] = node_id
        return node_id

    def add_edge(
        self,
        source_id: NodeId,
        target_id: NodeId,
        edge: Edge,
        edge_id: Optional[int] = None,
    ) -> EdgeId:
        """
        Register a directed edge from source_id to target_id.

        Returns:
            The edge's handle

        Raises:
            NodeNotFoundError: If either endpoint is not registered
            DuplicateEdgeError: If edge_id is already registered
        """
        if source_id not in self._node_map:
            raise NodeNotFoundError(source_id)
        if target_id not in self._node_map:
            raise NodeNotFoundError(target_id)

        if edge_id is None:
            edge_id = self._ids.next_edge_id()
        else:
            edge_id = EdgeId(edge_id)
            if edge_id in self._edges:
                raise DuplicateEdgeError(edge_id)
            self._ids.reserve_edge(edge_id)

        key = (source_id, target_id)
        previous = self._edge_map.get(key)
        if previous is not None and not self._multigraph:
            # rustworkx overwrites the payload of the existing pair
            self._shadowed[previous] = edge_id
            logger.warning(
                "Edge %s (%s) replaces edge %s (%s) between %s -> %s; "
                "the adjacency index keeps one edge per pair",
                edge_id, edge.kind.type.value,
                previous, self._edges[previous].kind.type.value,
                source_id, target_id,
            )

        self._graph.add_edge(self._node_map[source_id], self._node_map[target_id], edge_id)
        self._edges[edge_id] = edge
        self._edge_endpoints[edge_id] = key
        self._edge_map[key] = edge_id
        return edge_id

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def node(self, node_id: NodeId) -> Node:
        """
        Retrieve a node by handle.

        Raises:
            NodeNotFoundError: If the node doesn't exist
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def edge(self, edge_id: EdgeId) -> Edge:
        """
        Retrieve an edge by handle.

        Raises:
            EdgeNotFoundError: If the edge doesn't exist
        """
        try:
            return self._edges[edge_id]
        except KeyError:
            raise EdgeNotFoundError(edge_id) from None

    def has_node(self, node_id: NodeId) -> bool:
        return node_id in self._nodes

    def has_edge(self, edge_id: EdgeId) -> bool:
        return edge_id in self._edges

    def edge_endpoints(self, edge_id: EdgeId) -> Tuple[NodeId, NodeId]:
        """(source, target) of an edge, shadowed edges included."""
        try:
            return self._edge_endpoints[edge_id]
        except KeyError:
            raise EdgeNotFoundError(edge_id) from None

    def iter_nodes(self) -> Iterator[Tuple[NodeId, Node]]:
        """Iterate (id, node) pairs. Order is not meaningful."""
        return iter(self._nodes.items())

    def iter_edges(self) -> Iterator[Tuple[EdgeId, Edge]]:
        """Iterate (id, edge) pairs, shadowed edges included."""
        return iter(self._edges.items())

    # =========================================================================
    # ADJACENCY
    # =========================================================================

    def neighbors(self, node_id: NodeId, direction: Direction) -> Set[NodeId]:
        """Node ids one hop away in the given direction."""
        idx = self._get_index(node_id)
        if direction is Direction.INCOMING:
            indices = self._graph.predecessor_indices(idx)
        else:
            indices = self._graph.successor_indices(idx)
        return {self._inv_map[i] for i in indices}

    def edges_incident(
        self, node_id: NodeId, direction: Direction
    ) -> List[Tuple[NodeId, EdgeId]]:
        """
        (neighbor id, edge id) for every reachable edge on one side of a node.

        Shadowed edges are not reported; see the module docstring.
        """
        idx = self._get_index(node_id)
        if direction is Direction.INCOMING:
            return [
                (self._inv_map[src], edge_id)
                for src, _tgt, edge_id in self._graph.in_edges(idx)
            ]
        return [
            (self._inv_map[tgt], edge_id)
            for _src, tgt, edge_id in self._graph.out_edges(idx)
        ]

    def edge_between(self, source_id: NodeId, target_id: NodeId) -> Optional[EdgeId]:
        """The last registered edge from source_id to target_id, if any."""
        return self._edge_map.get((source_id, target_id))

    def edges_between(self, source_id: NodeId, target_id: NodeId) -> List[EdgeId]:
        """Every reachable edge from source_id to target_id (one unless multigraph)."""
        src_idx = self._get_index(source_id)
        tgt_idx = self._get_index(target_id)
        try:
            return list(self._graph.get_all_edge_data(src_idx, tgt_idx))
        except rx.NoEdgeBetweenNodes:
            return []

    def in_degree(self, node_id: NodeId) -> int:
        """Number of reachable incoming edges."""
        return self._graph.in_degree(self._get_index(node_id))

    def shadowed_edges(self) -> Dict[EdgeId, EdgeId]:
        """Edges hidden from adjacency, mapped to the edge that replaced them."""
        return dict(self._shadowed)

    # =========================================================================
    # INTERNAL UTILITIES
    # =========================================================================

    def _get_index(self, node_id: NodeId) -> int:
        """Internal: get rustworkx index for a node id."""
        if node_id not in self._node_map:
            raise NodeNotFoundError(node_id)
        return self._node_map[node_id]

    def __len__(self) -> int:
        """Return number of nodes."""
        return self.node_count

    def __contains__(self, node_id: NodeId) -> bool:
        """Check if node exists."""
        return node_id in self._nodes

    def __repr__(self) -> str:
        return f"PageGraph(nodes={self.node_count}, edges={self.edge_count})"


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================

def create_page_graph(settings: Optional[Settings] = None) -> PageGraph:
    """
    Create an empty PageGraph configured from settings.

    Args:
        settings: Graph settings. The process-wide settings if None.
    """
    if settings is None:
        settings = get_settings()
    return PageGraph(multigraph=settings.graph.multigraph)
