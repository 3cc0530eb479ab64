"""
PAGEGRAPH CAUSALITY - What a node caused to happen

direct_effects() dispatches on node kind through DIRECT_EFFECT_RULES, a
table with one entry per NodeType. Only three kinds are modeled:

  RESOURCE     a completed fetch into a <script> element runs the element's
               script nodes
  HTML_ELEMENT a <script> element fetches its src resources, or (inline)
               runs its script nodes directly; other tags are unsupported
  SCRIPT       the resources completing into it, plus scripts it runs

Every other kind maps to _unsupported, which raises
UnsupportedNodeKindError. Extending tracing means replacing a table entry,
never falling through to an empty result.

all_downstream_effects() is the transitive closure of direct_effects().
"""
import logging
from typing import Callable, Dict, Iterable, List, Set

from pagegraph.graph_db import PageGraph, UnsupportedNodeKindError
from pagegraph.ontology import (
    NodeType,
    RequestComplete,
    Resource,
    Script,
    is_script_element,
)
from pagegraph.queries import NodeRef
from pagegraph.schemas import Direction, Node, NodeId

logger = logging.getLogger(__name__)

EffectRule = Callable[[PageGraph, NodeId, Node], List[NodeId]]


def _outgoing_of_kind(graph: PageGraph, node_id: NodeId, variant: type) -> List[NodeId]:
    return sorted(
        neighbor for neighbor in graph.neighbors(node_id, Direction.OUTGOING)
        if isinstance(graph.node(neighbor).kind, variant)
    )


def _unique(node_ids: Iterable[NodeId]) -> List[NodeId]:
    seen: Set[NodeId] = set()
    ordered = []
    for node_id in node_ids:
        if node_id not in seen:
            seen.add(node_id)
            ordered.append(node_id)
    return ordered


# =============================================================================
# EFFECT RULES
# =============================================================================

def _resource_effects(graph: PageGraph, node_id: NodeId, node: Node) -> List[NodeId]:
    # script resources run the script attached to the <script> element they complete into
    script_elements = [
        target
        for target, edge_id in graph.edges_incident(node_id, Direction.OUTGOING)
        if isinstance(graph.edge(edge_id).kind, RequestComplete)
        and is_script_element(graph.node(target).kind)
    ]
    return _unique(
        script_id
        for element_id in script_elements
        for script_id in _outgoing_of_kind(graph, element_id, Script)
    )


def _html_element_effects(graph: PageGraph, node_id: NodeId, node: Node) -> List[NodeId]:
    if not is_script_element(node.kind):
        return _unsupported(graph, node_id, node)

    # src="..." elements fetch; inline elements execute directly
    resources = _outgoing_of_kind(graph, node_id, Resource)
    if resources:
        return resources
    return _outgoing_of_kind(graph, node_id, Script)


def _script_effects(graph: PageGraph, node_id: NodeId, node: Node) -> List[NodeId]:
    fetched = [
        source
        for source, edge_id in graph.edges_incident(node_id, Direction.INCOMING)
        if isinstance(graph.edge(edge_id).kind, RequestComplete)
    ]
    executed = _outgoing_of_kind(graph, node_id, Script)
    # TODO: scripts also create/modify DOM nodes, call web APIs and builtins,
    # and touch storage and cookies; none of those edges are traced yet
    return _unique(fetched + executed)


def _unsupported(graph: PageGraph, node_id: NodeId, node: Node) -> List[NodeId]:
    raise UnsupportedNodeKindError(node_id, node)


DIRECT_EFFECT_RULES: Dict[NodeType, EffectRule] = {
    NodeType.RESOURCE: _resource_effects,
    NodeType.HTML_ELEMENT: _html_element_effects,
    NodeType.SCRIPT: _script_effects,
    NodeType.DOM_ROOT: _unsupported,
    NodeType.TEXT_NODE: _unsupported,
    NodeType.FRAME_OWNER: _unsupported,
    NodeType.REMOTE_FRAME: _unsupported,
    NodeType.PARSER: _unsupported,
    NodeType.WEB_API: _unsupported,
    NodeType.JS_BUILTIN: _unsupported,
    NodeType.EXTENSIONS: _unsupported,
    NodeType.STORAGE: _unsupported,
    NodeType.LOCAL_STORAGE: _unsupported,
    NodeType.SESSION_STORAGE: _unsupported,
    NodeType.COOKIE_JAR: _unsupported,
    NodeType.BRAVE_SHIELDS: _unsupported,
    NodeType.ADS_SHIELD: _unsupported,
    NodeType.TRACKERS_SHIELD: _unsupported,
    NodeType.JAVASCRIPT_SHIELD: _unsupported,
    NodeType.FINGERPRINTING_SHIELD: _unsupported,
    NodeType.AD_FILTER: _unsupported,
    NodeType.TRACKER_FILTER: _unsupported,
    NodeType.FINGERPRINTING_FILTER: _unsupported,
}


# =============================================================================
# PUBLIC API
# =============================================================================

def direct_effects(graph: PageGraph, node_id: NodeId) -> List[NodeRef]:
    """
    Immediate causal successors of a node.

    Raises:
        NodeNotFoundError: If node_id is not in the graph
        UnsupportedNodeKindError: If tracing is not modeled for its kind
    """
    node = graph.node(node_id)
    rule = DIRECT_EFFECT_RULES[node.kind.type]
    return [(effect_id, graph.node(effect_id)) for effect_id in rule(graph, node_id, node)]


def all_downstream_effects(graph: PageGraph, start_id: NodeId) -> List[NodeRef]:
    """
    Every node causally reachable from start_id, start_id included.

    Each node is expanded once. The returned set is fixed for a given
    graph; the order is visitation order and carries no meaning.

    Raises:
        UnsupportedNodeKindError: If the trace reaches a kind that is not
            modeled
    """
    pending: List[NodeId] = [start_id]
    visited: Set[NodeId] = set()
    order: List[NodeId] = []

    while pending:
        node_id = pending.pop()
        if node_id in visited:
            continue
        visited.add(node_id)
        order.append(node_id)

        for effect_id, _effect in direct_effects(graph, node_id):
            if effect_id not in visited:
                pending.append(effect_id)

    logger.debug("Node %s has %d downstream effects", start_id, len(order) - 1)
    return [(node_id, graph.node(node_id)) for node_id in order]


# =============================================================================
# MODULE INITIALIZATION
# =============================================================================

_missing_rules = [t.value for t in NodeType if t not in DIRECT_EFFECT_RULES]
if _missing_rules:
    raise RuntimeError(f"Causal tracing has no rule for node types: {_missing_rules}")
