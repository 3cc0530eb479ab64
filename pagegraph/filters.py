"""
PAGEGRAPH FILTER MATCHING - Adapter over the adblock rule engine

The graph never interprets filter-rule syntax itself. It needs exactly two
capabilities from a rule engine:
1. parse a pattern, failing softly on anything that is not a usable
   network rule
2. decide whether a structured request matches a parsed rule

Both are provided here on top of `adblockparser`. Soft parse failures
(returning None) cover: blank patterns, comments, cosmetic (element hiding)
rules, options the engine cannot evaluate, and regex rules that do not
compile.
"""
import logging
import re
from typing import Dict, Mapping, Optional

import msgspec
from adblockparser import AdblockRule

logger = logging.getLogger(__name__)


# Request-type options the engine evaluates
REQUEST_TYPE_OPTIONS = frozenset({
    "script",
    "image",
    "stylesheet",
    "object",
    "xmlhttprequest",
    "object-subrequest",
    "subdocument",
    "document",
    "other",
    "background",
    "xbl",
    "ping",
    "dtd",
    "media",
    "websocket",
})

# Options that do not depend on the request; evaluated as always satisfied
NEUTRAL_OPTIONS = frozenset({
    "match-case",
    "collapse",
    "donottrack",
    "elemhide",
    "important",
})

SUPPORTED_OPTIONS = REQUEST_TYPE_OPTIONS | NEUTRAL_OPTIONS | {"third-party", "domain"}

# Shorthand option names -> the long form the engine understands
OPTION_SHORTHANDS: Dict[str, str] = {
    "3p": "third-party",
    "1p": "~third-party",
    "first-party": "~third-party",
    "xhr": "xmlhttprequest",
    "css": "stylesheet",
    "frame": "subdocument",
}

# Recorder request type -> engine option, when the names differ
DEFAULT_REQUEST_TYPE_ALIASES: Dict[str, str] = {
    "fetch": "xmlhttprequest",
    "xhr": "xmlhttprequest",
    "beacon": "ping",
    "iframe": "subdocument",
    "sub_frame": "subdocument",
    "main_frame": "document",
    "css": "stylesheet",
    "img": "image",
    "imageset": "image",
    "font": "other",
}


class FilterRequest(msgspec.Struct, kw_only=True, frozen=True):
    """A resource request described the way rules are evaluated against it."""
    request_type: str
    url: str
    scheme: str
    hostname: str
    domain: str
    source_hostname: str
    source_domain: str

    @property
    def is_third_party(self) -> bool:
        return self.domain != self.source_domain


def normalize_request_type(
    request_type: str,
    aliases: Optional[Mapping[str, str]] = None,
) -> str:
    """Map a recorder request type onto an engine option name."""
    name = request_type.strip().lower()
    table = DEFAULT_REQUEST_TYPE_ALIASES if aliases is None else aliases
    name = table.get(name, name)
    return name if name in REQUEST_TYPE_OPTIONS else "other"


class NetworkFilter:
    """
    A parsed network rule.

    Exception rules ("@@...") are parsed too; matches() reports whether the
    rule's pattern applies, leaving block/allow semantics to the caller.
    """

    def __init__(self, pattern: str, rule: AdblockRule, aliases: Optional[Mapping[str, str]] = None):
        self.pattern = pattern
        self._rule = rule
        self._aliases = aliases

    @property
    def is_exception(self) -> bool:
        return self._rule.is_exception

    @property
    def options(self) -> dict:
        return dict(self._rule.options)

    def matches(self, request: FilterRequest) -> bool:
        """True if this rule applies to the request."""
        request_type = normalize_request_type(request.request_type, self._aliases)
        options = {}
        for name, value in self._rule.options.items():
            if name == "domain":
                options[name] = request.source_hostname
            elif name == "third-party":
                options[name] = request.is_third_party
            elif name in REQUEST_TYPE_OPTIONS:
                options[name] = name == request_type
            else:
                options[name] = value
        return self._rule.match_url(request.url, options)

    def __repr__(self) -> str:
        return f"NetworkFilter({self.pattern!r})"


def expand_option_shorthands(text: str) -> str:
    """
    Rewrite shorthand options ("$3p", "$xhr", ...) to their long names.

    A leading "~" on a shorthand is applied on top of its expansion, so
    "~1p" becomes "third-party".
    """
    if "$" not in text or "##" in text or "#@#" in text:
        return text
    body, options_text = text.split("$", 1)
    options = []
    for option in options_text.split(","):
        negated = option.startswith("~")
        name = option[1:] if negated else option
        expanded = OPTION_SHORTHANDS.get(name.strip().lower())
        if expanded is None:
            options.append(option)
            continue
        if negated:
            expanded = expanded[1:] if expanded.startswith("~") else "~" + expanded
        options.append(expanded)
    return body + "$" + ",".join(options)


def parse_network_filter(
    pattern: str,
    aliases: Optional[Mapping[str, str]] = None,
) -> Optional[NetworkFilter]:
    """
    Parse a network filter rule.

    Returns:
        NetworkFilter, or None if the pattern is not a usable network rule
    """
    text = pattern.strip()
    if not text:
        return None

    try:
        rule = AdblockRule(expand_option_shorthands(text))
        if rule.is_comment or rule.is_html_rule:
            return None
        unsupported = set(rule.options) - SUPPORTED_OPTIONS
        if unsupported:
            logger.debug("Filter %r uses unsupported options %s", pattern, sorted(unsupported))
            return None
        re.compile(rule.regex)
    except (ValueError, re.error) as e:
        logger.debug("Filter %r did not parse: %s", pattern, e)
        return None

    return NetworkFilter(text, rule, aliases)
