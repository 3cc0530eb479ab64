"""
Pytest configuration and shared fixtures for the pagegraph test suite.
"""
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset process-wide settings before each test to ensure isolation."""
    from infrastructure.config import set_settings

    set_settings(None)

    yield

    set_settings(None)


@pytest.fixture
def fresh_graph():
    """Provide an empty PageGraph."""
    from pagegraph.graph_db import PageGraph
    return PageGraph()


@pytest.fixture
def page(fresh_graph):
    """
    A small but complete page load of https://news.example.com/article.

    Layout:
        root --structure--> html --structure--> inline_el, external_el, img_el, div
        frame_owner --cross_dom--> frame_root (second, nested DOM root)

        inline_el --execute--> inline_script --execute--> eval_script
        inline_script --request_start(fetch)--> api
        api --request_complete--> inline_script

        external_el --request_start(script)--> lib
        lib --request_complete--> external_el
        external_el --execute--> lib_script
        lib_script --request_start(image)--> pixel
        pixel --request_complete--> lib_script

        img_el --request_start(image)--> logo
        parser --create_node--> div; inline_script/lib_script --set_attribute--> div
    """
    from pagegraph.ontology import (
        CreateNode, CrossDom, DomRoot, Execute, FrameOwner, HtmlElement,
        Parser, RequestComplete, RequestStart, Resource, Script,
        SetAttribute, Structure,
    )
    from pagegraph.schemas import Edge, Node

    g = fresh_graph
    ids = SimpleNamespace(graph=g)

    ids.root = g.add_node(Node(kind=DomRoot(url="https://news.example.com/article", tag_name="#document")))
    ids.parser = g.add_node(Node(timestamp=0, kind=Parser()))
    ids.html = g.add_node(Node(timestamp=1, kind=HtmlElement(tag_name="html", node_id=1)))
    ids.inline_el = g.add_node(Node(timestamp=2, kind=HtmlElement(tag_name="script", node_id=2)))
    ids.external_el = g.add_node(Node(timestamp=3, kind=HtmlElement(tag_name="script", node_id=3)))
    ids.img_el = g.add_node(Node(timestamp=4, kind=HtmlElement(tag_name="img", node_id=4)))
    ids.div = g.add_node(Node(timestamp=5, kind=HtmlElement(tag_name="div", node_id=5)))
    ids.frame_owner = g.add_node(Node(timestamp=6, kind=FrameOwner(tag_name="iframe", node_id=6)))
    ids.frame_root = g.add_node(Node(timestamp=7, kind=DomRoot(url="https://ads.tracker.test/frame", node_id=7)))

    ids.inline_script = g.add_node(Node(timestamp=10, kind=Script(script_id=1, source="fetch('/api/data')")))
    ids.eval_script = g.add_node(Node(timestamp=11, kind=Script(script_type="eval", script_id=2)))
    ids.lib_script = g.add_node(Node(timestamp=12, kind=Script(url="https://cdn.tracker.test/lib.js", script_id=3)))

    ids.api = g.add_node(Node(timestamp=20, kind=Resource(url="https://news.example.com/api/data")))
    ids.lib = g.add_node(Node(timestamp=21, kind=Resource(url="https://cdn.tracker.test/lib.js")))
    ids.pixel = g.add_node(Node(timestamp=22, kind=Resource(url="https://tracker.test/pixel.gif")))
    ids.logo = g.add_node(Node(timestamp=23, kind=Resource(url="https://news.example.com/logo.png")))

    structure = Edge(kind=Structure())
    g.add_edge(ids.root, ids.html, structure)
    for child in (ids.inline_el, ids.external_el, ids.img_el, ids.div, ids.frame_owner):
        g.add_edge(ids.html, child, structure)
    g.add_edge(ids.frame_owner, ids.frame_root, Edge(timestamp=7, kind=CrossDom()))

    g.add_edge(ids.inline_el, ids.inline_script, Edge(timestamp=30, kind=Execute()))
    g.add_edge(ids.inline_script, ids.eval_script, Edge(timestamp=31, kind=Execute()))
    g.add_edge(ids.inline_script, ids.api, Edge(timestamp=32, kind=RequestStart(request_type="fetch", request_id=1)))
    g.add_edge(ids.api, ids.inline_script, Edge(timestamp=33, kind=RequestComplete(resource_type="fetch", request_id=1)))

    g.add_edge(ids.external_el, ids.lib, Edge(timestamp=40, kind=RequestStart(request_type="script", request_id=2)))
    g.add_edge(ids.lib, ids.external_el, Edge(timestamp=41, kind=RequestComplete(resource_type="script", request_id=2)))
    g.add_edge(ids.external_el, ids.lib_script, Edge(timestamp=42, kind=Execute()))
    g.add_edge(ids.lib_script, ids.pixel, Edge(timestamp=43, kind=RequestStart(request_type="image", request_id=3)))
    g.add_edge(ids.pixel, ids.lib_script, Edge(timestamp=44, kind=RequestComplete(resource_type="image", request_id=3)))

    g.add_edge(ids.img_el, ids.logo, Edge(timestamp=50, kind=RequestStart(request_type="image", request_id=4)))

    g.add_edge(ids.parser, ids.div, Edge(timestamp=5, kind=CreateNode()))
    g.add_edge(ids.lib_script, ids.div, Edge(timestamp=60, kind=SetAttribute(key="class", value="ad")))
    g.add_edge(ids.inline_script, ids.div, Edge(timestamp=45, kind=SetAttribute(key="id", value="main")))

    return ids
