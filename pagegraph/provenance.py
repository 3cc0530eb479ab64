"""
PAGEGRAPH PROVENANCE - Who touched what during the page load

Read-only views derived from the store:
- modification_history: every recorded change to an HTML element, in order
- resources_from_script: network resources attributable to a script
- root_url: the URL of the page under analysis
- resources_matching_filter: resources an adblock network rule applies to

Error Policy:
  Wrong node kinds, missing timestamps, missing or ambiguous DOM roots, and
  resources with zero or several request types are ingestion bugs; they
  raise GraphInvariantError subclasses. Unparseable filter patterns and
  resource URLs are ordinary data and are skipped.
"""
import logging
from typing import List, Set, Tuple

from infrastructure.config import get_settings
from pagegraph.domains import parse_url, site_of
from pagegraph.filters import FilterRequest, parse_network_filter
from pagegraph.graph_db import (
    GraphInvariantError,
    MissingTimestampError,
    NodeKindError,
    PageGraph,
)
from pagegraph.ontology import (
    DomRoot,
    HtmlElement,
    RequestStart,
    Resource,
    Script,
    is_script_element,
    is_structural,
)
from pagegraph.queries import EdgeRef, NodeRef, filter_nodes
from pagegraph.schemas import Direction, NodeId

logger = logging.getLogger(__name__)


# =============================================================================
# MODIFICATION HISTORY
# =============================================================================

def modification_history(graph: PageGraph, element_id: NodeId) -> List[EdgeRef]:
    """
    Every non-structural edge into an HTML element, oldest first.

    Args:
        element_id: An HTML_ELEMENT node

    Returns:
        (edge id, edge) pairs sorted by edge timestamp (stable for ties)

    Raises:
        NodeKindError: If element_id is not an HTML element
        MissingTimestampError: If a modification edge has no timestamp
    """
    element = graph.node(element_id)
    if not isinstance(element.kind, HtmlElement):
        raise NodeKindError(element_id, element, "HTML_ELEMENT")

    modifications = []
    for _source, edge_id in graph.edges_incident(element_id, Direction.INCOMING):
        edge = graph.edge(edge_id)
        if is_structural(edge.kind):
            continue
        if edge.timestamp is None:
            raise MissingTimestampError(edge_id, edge)
        modifications.append((edge_id, edge))

    modifications.sort(key=lambda ref: ref[1].timestamp)
    return modifications


# =============================================================================
# RESOURCE ATTRIBUTION
# =============================================================================

def _outgoing_resources(graph: PageGraph, node_id: NodeId) -> List[NodeId]:
    return [
        neighbor for neighbor in graph.neighbors(node_id, Direction.OUTGOING)
        if isinstance(graph.node(neighbor).kind, Resource)
    ]


def resources_from_script(graph: PageGraph, node_id: NodeId) -> List[NodeRef]:
    """
    Resources whose requests were initiated by a script.

    For a SCRIPT node these are its outgoing resource neighbors. For a
    <script> HTML element they are its own outgoing resource neighbors
    (a src="..." fetch) plus the outgoing resource neighbors of every
    script node the element executed.

    Raises:
        NodeKindError: For any other kind of node
    """
    node = graph.node(node_id)
    resource_ids = _outgoing_resources(graph, node_id)

    if isinstance(node.kind, Script):
        pass
    elif is_script_element(node.kind):
        for neighbor in graph.neighbors(node_id, Direction.OUTGOING):
            if isinstance(graph.node(neighbor).kind, Script):
                resource_ids.extend(_outgoing_resources(graph, neighbor))
    else:
        raise NodeKindError(node_id, node, 'SCRIPT or HTML_ELEMENT with tag_name "script"')

    seen: Set[NodeId] = set()
    result = []
    for resource_id in resource_ids:
        if resource_id not in seen:
            seen.add(resource_id)
            result.append((resource_id, graph.node(resource_id)))
    return result


# =============================================================================
# PAGE URL
# =============================================================================

def root_url(graph: PageGraph) -> str:
    """
    URL of the page the graph was recorded from.

    Raises:
        GraphInvariantError: Unless exactly one DOM root has no incoming
            edges, or if that root has no URL
    """
    roots = [
        (node_id, node)
        for node_id, node in filter_nodes(graph, lambda kind: isinstance(kind, DomRoot))
        if graph.in_degree(node_id) == 0
    ]
    if len(roots) != 1:
        raise GraphInvariantError(
            f"Expected exactly one top-level DOM root, found {len(roots)}"
        )

    node_id, node = roots[0]
    if not node.kind.url:
        raise GraphInvariantError(f"DOM root {node_id} has no URL")
    return node.kind.url


# =============================================================================
# FILTER MATCHING
# =============================================================================

def _request_type(graph: PageGraph, resource_id: NodeId) -> str:
    """The single request type a resource was requested with."""
    request_types = {
        graph.edge(edge_id).kind.request_type
        for _source, edge_id in graph.edges_incident(resource_id, Direction.INCOMING)
        if isinstance(graph.edge(edge_id).kind, RequestStart)
    }
    if not request_types:
        raise GraphInvariantError(
            f"Resource node {resource_id} has no associated request"
        )
    if len(request_types) > 1:
        raise GraphInvariantError(
            f"Resource node {resource_id} requested with inconsistent types: "
            f"{sorted(request_types)}"
        )
    return request_types.pop()


def _source_site(graph: PageGraph) -> Tuple[str, str]:
    """(hostname, registrable domain) of the page under analysis."""
    url = root_url(graph)
    parsed = parse_url(url)
    if parsed is None:
        raise GraphInvariantError(f"Page URL has no valid host: {url!r}")
    return parsed.hostname, site_of(parsed.hostname)


def resources_matching_filter(graph: PageGraph, pattern: str, aliases=None) -> List[NodeRef]:
    """
    Resource nodes whose requests match an adblock network rule.

    Args:
        pattern: A single network filter rule, e.g. "||tracker.test^$script"
        aliases: Request-type alias table (see filters.py). Defaults to
                 filters.request_type_aliases from the loaded settings

    Returns:
        Matching (id, node) pairs; [] if the pattern does not parse

    Raises:
        GraphInvariantError: If the page URL cannot be determined, or a
            resource has zero or several distinct request types
    """
    if aliases is None:
        aliases = get_settings().filters.request_type_aliases or None
    rule = parse_network_filter(pattern, aliases)
    if rule is None:
        logger.debug("Pattern %r is not a network rule; no matches", pattern)
        return []

    source_hostname, source_domain = _source_site(graph)

    matches = []
    for resource_id, resource in filter_nodes(graph, lambda kind: isinstance(kind, Resource)):
        parsed = parse_url(resource.kind.url)
        if parsed is None:
            logger.debug("Skipping resource %s with unparseable URL %r", resource_id, resource.kind.url)
            continue

        request = FilterRequest(
            request_type=_request_type(graph, resource_id),
            url=parsed.url,
            scheme=parsed.scheme,
            hostname=parsed.hostname,
            domain=site_of(parsed.hostname),
            source_hostname=source_hostname,
            source_domain=source_domain,
        )
        if rule.matches(request):
            matches.append((resource_id, resource))

    logger.debug("Pattern %r matched %d resources", pattern, len(matches))
    return matches
