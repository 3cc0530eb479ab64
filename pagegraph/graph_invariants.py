"""
PAGEGRAPH INVARIANTS - Whole-graph diagnostics

The query modules fail fast on the first broken precondition they touch.
This module is the other side of that policy: it walks the whole graph once
and reports every problem it finds without raising, so an ingestion bug can
be seen in full before any query trips over it.

Invariants Checked:
1. Single Root: exactly one DOM root without incoming edges, with a URL
2. Endpoint Integrity: both endpoints of every edge are registered nodes
3. Adjacency Fidelity: no edge is shadowed by a later edge for the same pair
4. Modification Timestamps: non-structural edges into HTML elements carry
   a timestamp
5. Request Consistency: every resource has exactly one request type
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from pagegraph.graph_db import PageGraph
from pagegraph.ontology import DomRoot, HtmlElement, RequestStart, Resource, is_structural
from pagegraph.schemas import Direction, EdgeId, NodeId

logger = logging.getLogger(__name__)


# =============================================================================
# INVARIANT RESULTS
# =============================================================================

class InvariantSeverity(Enum):
    """Severity levels for invariant violations."""
    ERROR = "error"      # A query touching this will raise
    WARNING = "warning"  # Queries succeed but may under-count
    INFO = "info"        # For metrics/diagnostics


@dataclass
class InvariantViolation:
    """A specific invariant violation."""
    invariant: str
    severity: InvariantSeverity
    message: str
    nodes_involved: List[NodeId] = field(default_factory=list)
    edges_involved: List[EdgeId] = field(default_factory=list)


@dataclass
class InvariantReport:
    """Complete invariant validation report."""
    valid: bool
    violations: List[InvariantViolation]
    metrics: Dict[str, Any]

    @property
    def errors(self) -> List[InvariantViolation]:
        return [v for v in self.violations if v.severity == InvariantSeverity.ERROR]

    @property
    def warnings(self) -> List[InvariantViolation]:
        return [v for v in self.violations if v.severity == InvariantSeverity.WARNING]


# =============================================================================
# CHECKS
# =============================================================================

def check_single_root(graph: PageGraph) -> List[InvariantViolation]:
    roots = [
        (node_id, node) for node_id, node in graph.iter_nodes()
        if isinstance(node.kind, DomRoot) and graph.in_degree(node_id) == 0
    ]
    if len(roots) != 1:
        return [InvariantViolation(
            invariant="single_root",
            severity=InvariantSeverity.ERROR,
            message=f"Expected one top-level DOM root, found {len(roots)}",
            nodes_involved=sorted(node_id for node_id, _ in roots),
        )]
    node_id, node = roots[0]
    if not node.kind.url:
        return [InvariantViolation(
            invariant="single_root",
            severity=InvariantSeverity.ERROR,
            message=f"DOM root {node_id} has no URL",
            nodes_involved=[node_id],
        )]
    return []


def check_endpoint_integrity(graph: PageGraph) -> List[InvariantViolation]:
    violations = []
    for edge_id, _edge in graph.iter_edges():
        source, target = graph.edge_endpoints(edge_id)
        missing = [n for n in (source, target) if not graph.has_node(n)]
        if missing:
            violations.append(InvariantViolation(
                invariant="endpoint_integrity",
                severity=InvariantSeverity.ERROR,
                message=f"Edge {edge_id} references unknown nodes {missing}",
                nodes_involved=missing,
                edges_involved=[edge_id],
            ))
    return violations


def check_adjacency_fidelity(graph: PageGraph) -> List[InvariantViolation]:
    violations = []
    for shadowed, replacement in sorted(graph.shadowed_edges().items()):
        source, target = graph.edge_endpoints(shadowed)
        violations.append(InvariantViolation(
            invariant="adjacency_fidelity",
            severity=InvariantSeverity.WARNING,
            message=(
                f"Edge {shadowed} ({graph.edge(shadowed).kind.type.value}) is hidden "
                f"by edge {replacement} between {source} -> {target}"
            ),
            nodes_involved=[source, target],
            edges_involved=[shadowed, replacement],
        ))
    return violations


def check_modification_timestamps(graph: PageGraph) -> List[InvariantViolation]:
    violations = []
    for node_id, node in graph.iter_nodes():
        if not isinstance(node.kind, HtmlElement):
            continue
        untimed = [
            edge_id
            for _source, edge_id in graph.edges_incident(node_id, Direction.INCOMING)
            if not is_structural(graph.edge(edge_id).kind)
            and graph.edge(edge_id).timestamp is None
        ]
        if untimed:
            violations.append(InvariantViolation(
                invariant="modification_timestamps",
                severity=InvariantSeverity.ERROR,
                message=f"HTML element {node_id} has modifications without timestamps",
                nodes_involved=[node_id],
                edges_involved=sorted(untimed),
            ))
    return violations


def check_request_consistency(graph: PageGraph) -> List[InvariantViolation]:
    violations = []
    for node_id, node in graph.iter_nodes():
        if not isinstance(node.kind, Resource):
            continue
        request_types = {
            graph.edge(edge_id).kind.request_type
            for _source, edge_id in graph.edges_incident(node_id, Direction.INCOMING)
            if isinstance(graph.edge(edge_id).kind, RequestStart)
        }
        if len(request_types) == 1:
            continue
        message = (
            f"Resource {node_id} has no associated request"
            if not request_types
            else f"Resource {node_id} requested with inconsistent types {sorted(request_types)}"
        )
        violations.append(InvariantViolation(
            invariant="request_consistency",
            severity=InvariantSeverity.ERROR,
            message=message,
            nodes_involved=[node_id],
        ))
    return violations


def get_graph_metrics(graph: PageGraph) -> Dict[str, Any]:
    """Node/edge counts, overall and by type."""
    return {
        "node_count": graph.node_count,
        "edge_count": graph.edge_count,
        "shadowed_edge_count": len(graph.shadowed_edges()),
        "nodes_by_type": dict(Counter(node.kind.type.value for _, node in graph.iter_nodes())),
        "edges_by_type": dict(Counter(edge.kind.type.value for _, edge in graph.iter_edges())),
    }


# =============================================================================
# PUBLIC API
# =============================================================================

ALL_CHECKS = (
    check_single_root,
    check_endpoint_integrity,
    check_adjacency_fidelity,
    check_modification_timestamps,
    check_request_consistency,
)


def validate_page_graph(graph: PageGraph) -> InvariantReport:
    """
    Run every invariant check.

    Returns:
        InvariantReport; `valid` is False if any ERROR was found
    """
    violations: List[InvariantViolation] = []
    for check in ALL_CHECKS:
        violations.extend(check(graph))

    report = InvariantReport(
        valid=not any(v.severity == InvariantSeverity.ERROR for v in violations),
        violations=violations,
        metrics=get_graph_metrics(graph),
    )
    for violation in report.violations:
        logger.info("%s: %s", violation.invariant, violation.message)
    return report
