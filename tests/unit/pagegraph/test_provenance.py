"""
Unit tests for pagegraph/provenance.py

Tests the provenance queries:
- modification_history ordering, structural exclusion, preconditions
- resources_from_script for script nodes and <script> elements
- root_url uniqueness
- resources_matching_filter matching, soft failures and request-type checks
"""
import pytest

from pagegraph.graph_db import (
    GraphInvariantError,
    MissingTimestampError,
    NodeKindError,
    PageGraph,
)
from pagegraph.ontology import (
    DeleteAttribute,
    DomRoot,
    Execute,
    HtmlElement,
    InsertNode,
    RequestStart,
    Resource,
    Script,
    SetAttribute,
    Structure,
    TextNode,
)
from pagegraph.provenance import (
    modification_history,
    resources_from_script,
    resources_matching_filter,
    root_url,
)
from pagegraph.schemas import Edge, Node


def _ids(refs):
    return sorted(node_id for node_id, _ in refs)


# =============================================================================
# MODIFICATION HISTORY
# =============================================================================

def test_modification_history_sorted_by_timestamp():
    """Three modifications recorded at 30, 10, 20 come back as 10, 20, 30."""
    g = PageGraph()
    root = g.add_node(Node(kind=DomRoot(url="http://a.test/")))
    element = g.add_node(Node(timestamp=1, kind=HtmlElement(tag_name="div")))
    g.add_edge(root, element, Edge(kind=Structure()))
    for timestamp in (30, 10, 20):
        actor = g.add_node(Node(timestamp=timestamp, kind=Script()))
        g.add_edge(actor, element, Edge(timestamp=timestamp, kind=SetAttribute(key="k", value=str(timestamp))))

    history = modification_history(g, element)

    assert [edge.timestamp for _, edge in history] == [10, 20, 30]
    assert [edge.kind.value for _, edge in history] == ["10", "20", "30"]


def test_modification_history_excludes_structural_edges(page):
    history = modification_history(page.graph, page.div)

    assert [edge.kind.type.value for _, edge in history] == [
        "CREATE_NODE", "SET_ATTRIBUTE", "SET_ATTRIBUTE",
    ]
    timestamps = [edge.timestamp for _, edge in history]
    assert timestamps == sorted(timestamps)


def test_modification_history_of_untouched_element(page):
    assert modification_history(page.graph, page.html) == []


def test_modification_history_ties_keep_edge_order():
    g = PageGraph()
    element = g.add_node(Node(kind=HtmlElement(tag_name="p")))
    first = g.add_node(Node(kind=Script()))
    second = g.add_node(Node(kind=Script()))
    g.add_edge(first, element, Edge(timestamp=5, kind=InsertNode(parent=0)))
    g.add_edge(second, element, Edge(timestamp=5, kind=DeleteAttribute(key="x")))

    history = modification_history(g, element)

    assert len(history) == 2
    assert {edge.timestamp for _, edge in history} == {5}


@pytest.mark.parametrize("attr", ["root", "inline_script", "api", "frame_owner"])
def test_modification_history_requires_html_element(page, attr):
    with pytest.raises(NodeKindError):
        modification_history(page.graph, getattr(page, attr))


def test_modification_history_rejects_text_nodes():
    g = PageGraph()
    text = g.add_node(Node(kind=TextNode(text="hello")))

    with pytest.raises(NodeKindError) as exc_info:
        modification_history(g, text)

    assert "TEXT_NODE" in str(exc_info.value)


def test_modification_history_missing_timestamp_is_fatal():
    g = PageGraph()
    element = g.add_node(Node(kind=HtmlElement(tag_name="div")))
    script = g.add_node(Node(kind=Script()))
    edge_id = g.add_edge(script, element, Edge(kind=SetAttribute(key="style")))

    with pytest.raises(MissingTimestampError) as exc_info:
        modification_history(g, element)

    assert exc_info.value.edge_id == edge_id
    assert isinstance(exc_info.value, GraphInvariantError)


def test_structural_edge_without_timestamp_is_fine():
    g = PageGraph()
    parent = g.add_node(Node(kind=HtmlElement(tag_name="body")))
    element = g.add_node(Node(kind=HtmlElement(tag_name="div")))
    g.add_edge(parent, element, Edge(kind=Structure()))

    assert modification_history(g, element) == []


# =============================================================================
# RESOURCES FROM SCRIPT
# =============================================================================

def test_resources_from_script_node(page):
    assert _ids(resources_from_script(page.graph, page.inline_script)) == [page.api]
    assert _ids(resources_from_script(page.graph, page.lib_script)) == [page.pixel]
    assert resources_from_script(page.graph, page.eval_script) == []


def test_resources_from_external_script_element(page):
    """src fetch plus whatever the executed script fetched."""
    found = resources_from_script(page.graph, page.external_el)

    assert _ids(found) == sorted([page.lib, page.pixel])
    assert all(isinstance(node.kind, Resource) for _, node in found)


def test_resources_from_inline_script_element(page):
    assert _ids(resources_from_script(page.graph, page.inline_el)) == [page.api]


def test_resources_from_script_element_deduplicates():
    g = PageGraph()
    element = g.add_node(Node(kind=HtmlElement(tag_name="script")))
    script = g.add_node(Node(kind=Script()))
    shared = g.add_node(Node(kind=Resource(url="https://a.test/x.js")))
    g.add_edge(element, script, Edge(timestamp=1, kind=Execute()))
    g.add_edge(element, shared, Edge(timestamp=2, kind=RequestStart(request_type="script")))
    g.add_edge(script, shared, Edge(timestamp=3, kind=RequestStart(request_type="script")))

    assert _ids(resources_from_script(g, element)) == [shared]


@pytest.mark.parametrize("attr", ["img_el", "div", "root", "api", "parser"])
def test_resources_from_script_rejects_other_nodes(page, attr):
    with pytest.raises(NodeKindError):
        resources_from_script(page.graph, getattr(page, attr))


# =============================================================================
# ROOT URL
# =============================================================================

def test_root_url_ignores_nested_documents(page):
    assert root_url(page.graph) == "https://news.example.com/article"


def test_root_url_is_stable(page):
    assert root_url(page.graph) == root_url(page.graph)


def test_root_url_without_root_fails(fresh_graph):
    fresh_graph.add_node(Node(kind=HtmlElement(tag_name="p")))

    with pytest.raises(GraphInvariantError):
        root_url(fresh_graph)


def test_root_url_with_two_roots_fails(page):
    page.graph.add_node(Node(kind=DomRoot(url="https://other.test/")))

    with pytest.raises(GraphInvariantError) as exc_info:
        root_url(page.graph)

    assert "found 2" in str(exc_info.value)


def test_root_url_requires_url(fresh_graph):
    fresh_graph.add_node(Node(kind=DomRoot()))

    with pytest.raises(GraphInvariantError):
        root_url(fresh_graph)


# =============================================================================
# FILTER MATCHING
# =============================================================================

def test_filter_matches_by_host(page):
    assert _ids(resources_matching_filter(page.graph, "||tracker.test^")) == sorted([page.lib, page.pixel])


def test_filter_respects_request_type(page):
    assert _ids(resources_matching_filter(page.graph, "||tracker.test^$image")) == [page.pixel]
    assert _ids(resources_matching_filter(page.graph, "||tracker.test^$script")) == [page.lib]
    assert _ids(resources_matching_filter(page.graph, "||tracker.test^$~script")) == [page.pixel]


def test_filter_maps_fetch_to_xmlhttprequest(page):
    assert _ids(resources_matching_filter(page.graph, "/api/$xmlhttprequest")) == [page.api]


def test_filter_third_party(page):
    assert _ids(resources_matching_filter(page.graph, "||example.com^$third-party")) == []
    assert _ids(resources_matching_filter(page.graph, "||example.com^$~third-party")) == sorted([page.api, page.logo])
    assert _ids(resources_matching_filter(page.graph, "$third-party,image")) == [page.pixel]


def test_filter_domain_option_uses_page_host(page):
    assert _ids(resources_matching_filter(page.graph, "||tracker.test^$domain=example.com")) == sorted([page.lib, page.pixel])
    assert resources_matching_filter(page.graph, "||tracker.test^$domain=other.test") == []


def test_filter_plain_substring(page):
    assert _ids(resources_matching_filter(page.graph, "/logo.png")) == [page.logo]


@pytest.mark.parametrize("pattern", [
    "",
    "   ",
    "! just a comment",
    "##.ad-banner",
    "example.com##div.sponsored",
    "||tracker.test^$not-an-option",
    "/[unclosed/",
])
def test_invalid_pattern_returns_empty(page, pattern):
    assert resources_matching_filter(page.graph, pattern) == []


def test_invalid_pattern_never_touches_graph(fresh_graph):
    """A bad pattern is a soft miss even on a graph with no root."""
    assert resources_matching_filter(fresh_graph, "##.ad") == []


def test_filter_skips_unparseable_resource_urls(page):
    page.graph.add_node(Node(kind=Resource(url="data:image/png;base64,AAAA")))
    page.graph.add_node(Node(kind=Resource(url="not a url")))
    page.graph.add_node(Node(kind=Resource(url="http://exa mple.com/x.png")))

    assert _ids(resources_matching_filter(page.graph, "||tracker.test^")) == sorted([page.lib, page.pixel])


def test_filter_skips_resource_with_bad_host_and_request():
    g = PageGraph()
    g.add_node(Node(kind=DomRoot(url="http://a.test/")))
    element = g.add_node(Node(kind=HtmlElement(tag_name="img")))
    resource = g.add_node(Node(kind=Resource(url="http://exa mple.com/x.png")))
    g.add_edge(element, resource, Edge(timestamp=1, kind=RequestStart(request_type="image")))

    assert resources_matching_filter(g, "||a.test^") == []
    assert resources_matching_filter(g, "$image") == []


@pytest.mark.parametrize("pattern, expected", [
    ("||tracker.test^$3p", ["lib", "pixel"]),
    ("||tracker.test^$~3p", []),
    ("/api/$xhr", ["api"]),
    ("||example.com^$1p", ["api", "logo"]),
    ("||example.com^$first-party", ["api", "logo"]),
    ("||example.com^$~1p", []),
])
def test_filter_accepts_option_shorthands(page, pattern, expected):
    assert _ids(resources_matching_filter(page.graph, pattern)) == sorted(getattr(page, name) for name in expected)


def _graph_with_double_request(second_type):
    g = PageGraph()
    g.add_node(Node(kind=DomRoot(url="http://a.test/")))
    first_script = g.add_node(Node(kind=Script()))
    second_script = g.add_node(Node(kind=Script()))
    resource = g.add_node(Node(kind=Resource(url="http://cdn.b.test/lib.js")))
    g.add_edge(first_script, resource, Edge(timestamp=1, kind=RequestStart(request_type="script")))
    g.add_edge(second_script, resource, Edge(timestamp=2, kind=RequestStart(request_type=second_type)))
    return g, resource


def test_same_request_type_twice_is_consistent():
    g, resource = _graph_with_double_request("script")

    assert _ids(resources_matching_filter(g, "||b.test^$script")) == [resource]


def test_inconsistent_request_types_are_fatal():
    g, _resource = _graph_with_double_request("image")

    with pytest.raises(GraphInvariantError) as exc_info:
        resources_matching_filter(g, "||b.test^$script")

    assert "inconsistent" in str(exc_info.value)


def test_resource_without_request_is_fatal():
    g = PageGraph()
    g.add_node(Node(kind=DomRoot(url="http://a.test/")))
    g.add_node(Node(kind=Resource(url="http://a.test/orphan.js")))

    with pytest.raises(GraphInvariantError) as exc_info:
        resources_matching_filter(g, "orphan")

    assert "no associated request" in str(exc_info.value)


def test_filter_without_page_root_is_fatal(fresh_graph):
    with pytest.raises(GraphInvariantError):
        resources_matching_filter(fresh_graph, "||a.test^")


def test_filter_with_ip_hosts():
    g = PageGraph()
    g.add_node(Node(kind=DomRoot(url="http://127.0.0.1:8000/")))
    element = g.add_node(Node(kind=HtmlElement(tag_name="img")))
    resource = g.add_node(Node(kind=Resource(url="http://10.0.0.1/a.png")))
    g.add_edge(element, resource, Edge(timestamp=1, kind=RequestStart(request_type="image")))

    assert _ids(resources_matching_filter(g, "$image,third-party")) == [resource]
