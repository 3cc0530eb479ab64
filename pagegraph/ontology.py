"""
PAGEGRAPH ONTOLOGY - The Dictionary of a Page Load

If schemas.py is the Grammar (how a node or edge is put together),
ontology.py is the Dictionary (the kinds of things a page load produces).

This module defines:
- NodeType / EdgeType: the closed vocabulary of entity and action kinds
- One frozen msgspec.Struct per kind, carrying that kind's payload
- NODE_VARIANTS / EDGE_VARIANTS: lookup tables from kind to variant class

Key Principle: the taxonomy is CLOSED.
Consumers that switch on a kind must handle every member, either with a
rule or with an explicit "unsupported" arm. Adding a member here is a
breaking change for every dispatch table built on top of it; the module
load check at the bottom reports members without a variant class.
"""
from typing import ClassVar, Dict, Optional, Type
from enum import Enum
import warnings

import msgspec


# =============================================================================
# ENUMS (The Vocabulary)
# =============================================================================

class NodeType(str, Enum):
    """Kinds of entities recorded during a page load."""
    # DOM
    DOM_ROOT = "DOM_ROOT"                    # Document root; carries the page URL
    HTML_ELEMENT = "HTML_ELEMENT"            # Element node (tag name + DOM id)
    TEXT_NODE = "TEXT_NODE"                  # Text content node
    FRAME_OWNER = "FRAME_OWNER"              # <iframe>/<frame>/<object> owner element
    REMOTE_FRAME = "REMOTE_FRAME"            # Out-of-process frame
    # Execution
    SCRIPT = "SCRIPT"                        # A compiled/executed script unit
    PARSER = "PARSER"                        # The HTML parser actor
    WEB_API = "WEB_API"                      # Instrumented Web API
    JS_BUILTIN = "JS_BUILTIN"                # Instrumented JS builtin
    EXTENSIONS = "EXTENSIONS"                # Browser extensions actor
    # Network
    RESOURCE = "RESOURCE"                    # Network resource (by URL)
    # Storage
    STORAGE = "STORAGE"                      # Storage root
    LOCAL_STORAGE = "LOCAL_STORAGE"
    SESSION_STORAGE = "SESSION_STORAGE"
    COOKIE_JAR = "COOKIE_JAR"
    # Policy enforcement
    BRAVE_SHIELDS = "BRAVE_SHIELDS"          # Shields root
    ADS_SHIELD = "ADS_SHIELD"
    TRACKERS_SHIELD = "TRACKERS_SHIELD"
    JAVASCRIPT_SHIELD = "JAVASCRIPT_SHIELD"
    FINGERPRINTING_SHIELD = "FINGERPRINTING_SHIELD"
    # Filter markers
    AD_FILTER = "AD_FILTER"                  # Matched adblock rule
    TRACKER_FILTER = "TRACKER_FILTER"
    FINGERPRINTING_FILTER = "FINGERPRINTING_FILTER"


class EdgeType(str, Enum):
    """Kinds of actions recorded during a page load."""
    # DOM structure and mutation
    STRUCTURE = "STRUCTURE"                  # Parent/child attachment (not a modification)
    CROSS_DOM = "CROSS_DOM"                  # Frame owner -> child document
    CREATE_NODE = "CREATE_NODE"
    INSERT_NODE = "INSERT_NODE"
    REMOVE_NODE = "REMOVE_NODE"
    DELETE_NODE = "DELETE_NODE"
    TEXT_CHANGE = "TEXT_CHANGE"
    SET_ATTRIBUTE = "SET_ATTRIBUTE"
    DELETE_ATTRIBUTE = "DELETE_ATTRIBUTE"
    # Execution
    EXECUTE = "EXECUTE"
    EXECUTE_FROM_ATTRIBUTE = "EXECUTE_FROM_ATTRIBUTE"
    JS_CALL = "JS_CALL"
    JS_RESULT = "JS_RESULT"
    ADD_EVENT_LISTENER = "ADD_EVENT_LISTENER"
    REMOVE_EVENT_LISTENER = "REMOVE_EVENT_LISTENER"
    EVENT_LISTENER = "EVENT_LISTENER"
    # Request lifecycle
    REQUEST_START = "REQUEST_START"
    REQUEST_COMPLETE = "REQUEST_COMPLETE"
    REQUEST_ERROR = "REQUEST_ERROR"
    REQUEST_RESPONSE = "REQUEST_RESPONSE"
    # Storage
    STORAGE_SET = "STORAGE_SET"
    STORAGE_READ_RESULT = "STORAGE_READ_RESULT"
    DELETE_STORAGE = "DELETE_STORAGE"
    READ_STORAGE_CALL = "READ_STORAGE_CALL"
    CLEAR_STORAGE = "CLEAR_STORAGE"
    STORAGE_BUCKET = "STORAGE_BUCKET"
    # Policy enforcement
    FILTER = "FILTER"
    RESOURCE_BLOCK = "RESOURCE_BLOCK"
    SHIELD = "SHIELD"


# =============================================================================
# NODE VARIANTS (Payload per NodeType)
# =============================================================================

class NodeVariant(msgspec.Struct, frozen=True, kw_only=True):
    """Base of every node payload. Subclasses pin `type` to one NodeType."""
    type: ClassVar[NodeType]


class DomRoot(NodeVariant):
    type: ClassVar[NodeType] = NodeType.DOM_ROOT
    url: Optional[str] = None
    tag_name: str = ""
    is_deleted: bool = False
    node_id: int = 0


class HtmlElement(NodeVariant):
    type: ClassVar[NodeType] = NodeType.HTML_ELEMENT
    tag_name: str
    is_deleted: bool = False
    node_id: int = 0


class TextNode(NodeVariant):
    type: ClassVar[NodeType] = NodeType.TEXT_NODE
    text: Optional[str] = None
    is_deleted: bool = False
    node_id: int = 0


class FrameOwner(NodeVariant):
    type: ClassVar[NodeType] = NodeType.FRAME_OWNER
    tag_name: str
    is_deleted: bool = False
    node_id: int = 0


class RemoteFrame(NodeVariant):
    type: ClassVar[NodeType] = NodeType.REMOTE_FRAME
    frame_id: str


class Script(NodeVariant):
    type: ClassVar[NodeType] = NodeType.SCRIPT
    url: Optional[str] = None
    script_type: str = "classic"
    script_id: int = 0
    source: str = ""


class Parser(NodeVariant):
    type: ClassVar[NodeType] = NodeType.PARSER


class WebApi(NodeVariant):
    type: ClassVar[NodeType] = NodeType.WEB_API
    method: str


class JsBuiltin(NodeVariant):
    type: ClassVar[NodeType] = NodeType.JS_BUILTIN
    method: str


class Extensions(NodeVariant):
    type: ClassVar[NodeType] = NodeType.EXTENSIONS


class Resource(NodeVariant):
    type: ClassVar[NodeType] = NodeType.RESOURCE
    url: str


class Storage(NodeVariant):
    type: ClassVar[NodeType] = NodeType.STORAGE


class LocalStorage(NodeVariant):
    type: ClassVar[NodeType] = NodeType.LOCAL_STORAGE


class SessionStorage(NodeVariant):
    type: ClassVar[NodeType] = NodeType.SESSION_STORAGE


class CookieJar(NodeVariant):
    type: ClassVar[NodeType] = NodeType.COOKIE_JAR


class BraveShields(NodeVariant):
    type: ClassVar[NodeType] = NodeType.BRAVE_SHIELDS


class AdsShield(NodeVariant):
    type: ClassVar[NodeType] = NodeType.ADS_SHIELD


class TrackersShield(NodeVariant):
    type: ClassVar[NodeType] = NodeType.TRACKERS_SHIELD


class JavascriptShield(NodeVariant):
    type: ClassVar[NodeType] = NodeType.JAVASCRIPT_SHIELD


class FingerprintingShield(NodeVariant):
    type: ClassVar[NodeType] = NodeType.FINGERPRINTING_SHIELD


class AdFilter(NodeVariant):
    type: ClassVar[NodeType] = NodeType.AD_FILTER
    rule: str


class TrackerFilter(NodeVariant):
    type: ClassVar[NodeType] = NodeType.TRACKER_FILTER


class FingerprintingFilter(NodeVariant):
    type: ClassVar[NodeType] = NodeType.FINGERPRINTING_FILTER


# =============================================================================
# EDGE VARIANTS (Payload per EdgeType)
# =============================================================================

class EdgeVariant(msgspec.Struct, frozen=True, kw_only=True):
    """Base of every edge payload. Subclasses pin `type` to one EdgeType."""
    type: ClassVar[EdgeType]


class Structure(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.STRUCTURE


class CrossDom(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.CROSS_DOM


class CreateNode(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.CREATE_NODE


class InsertNode(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.INSERT_NODE
    parent: int
    before: Optional[int] = None


class RemoveNode(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.REMOVE_NODE


class DeleteNode(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.DELETE_NODE


class TextChange(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.TEXT_CHANGE


class SetAttribute(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.SET_ATTRIBUTE
    key: str
    value: Optional[str] = None
    is_style: bool = False


class DeleteAttribute(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.DELETE_ATTRIBUTE
    key: str
    is_style: bool = False


class Execute(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.EXECUTE


class ExecuteFromAttribute(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.EXECUTE_FROM_ATTRIBUTE
    attr_name: str


class JsCall(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.JS_CALL
    args: Optional[str] = None
    script_position: int = 0


class JsResult(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.JS_RESULT
    value: Optional[str] = None


class AddEventListener(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.ADD_EVENT_LISTENER
    key: str
    event_listener_id: int
    script_id: int


class RemoveEventListener(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.REMOVE_EVENT_LISTENER
    key: str
    event_listener_id: int
    script_id: int


class EventListener(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.EVENT_LISTENER
    key: str
    event_listener_id: int


class RequestStart(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.REQUEST_START
    request_type: str
    status: str = "started"
    request_id: int = 0


class RequestComplete(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.REQUEST_COMPLETE
    resource_type: str = ""
    status: str = "complete"
    value: Optional[str] = None
    response_hash: Optional[str] = None
    request_id: int = 0
    headers: str = ""
    size: str = ""


class RequestError(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.REQUEST_ERROR
    status: str = "error"
    request_id: int = 0
    value: Optional[str] = None
    headers: str = ""
    size: str = ""


class RequestResponse(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.REQUEST_RESPONSE


class StorageSet(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.STORAGE_SET
    key: str
    value: Optional[str] = None


class StorageReadResult(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.STORAGE_READ_RESULT
    key: str
    value: Optional[str] = None


class DeleteStorage(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.DELETE_STORAGE
    key: str


class ReadStorageCall(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.READ_STORAGE_CALL
    key: str


class ClearStorage(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.CLEAR_STORAGE
    key: Optional[str] = None


class StorageBucket(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.STORAGE_BUCKET


class Filter(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.FILTER


class ResourceBlock(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.RESOURCE_BLOCK


class Shield(EdgeVariant):
    type: ClassVar[EdgeType] = EdgeType.SHIELD


# =============================================================================
# LOOKUP TABLES
# =============================================================================

NODE_VARIANTS: Dict[NodeType, Type[NodeVariant]] = {
    cls.type: cls for cls in NodeVariant.__subclasses__()
}

EDGE_VARIANTS: Dict[EdgeType, Type[EdgeVariant]] = {
    cls.type: cls for cls in EdgeVariant.__subclasses__()
}


def is_structural(kind: EdgeVariant) -> bool:
    """True for DOM parent/child attachment edges."""
    return kind.type is EdgeType.STRUCTURE


def is_script_element(kind: NodeVariant) -> bool:
    """True for an HTML element whose tag name is exactly "script"."""
    return isinstance(kind, HtmlElement) and kind.tag_name == "script"


# =============================================================================
# MODULE INITIALIZATION
# =============================================================================

def _validate_variants() -> list:
    """Check that every enum member has exactly one variant class."""
    errors = []

    node_classes = NodeVariant.__subclasses__()
    edge_classes = EdgeVariant.__subclasses__()

    for node_type in NodeType:
        if node_type not in NODE_VARIANTS:
            errors.append(f"NodeType without variant: {node_type.value}")
    if len(node_classes) != len(NODE_VARIANTS):
        errors.append("Several node variants claim the same NodeType")

    for edge_type in EdgeType:
        if edge_type not in EDGE_VARIANTS:
            errors.append(f"EdgeType without variant: {edge_type.value}")
    if len(edge_classes) != len(EDGE_VARIANTS):
        errors.append("Several edge variants claim the same EdgeType")

    return errors


# Run validation on module load
_validation_errors = _validate_variants()
if _validation_errors:
    for err in _validation_errors:
        warnings.warn(f"Ontology validation: {err}")
