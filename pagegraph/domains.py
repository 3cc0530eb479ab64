"""
Host and URL helpers: registrable domains and URL parsing.

registrable_domain() follows the Public Suffix List bundled with
`publicsuffixlist`, so no network access is needed. Unknown TLDs follow the
PSL default rule ("*"), i.e. the last label is the public suffix.
"""
import ipaddress
import re
from functools import lru_cache
from typing import NamedTuple, Optional
from urllib.parse import urlsplit

from publicsuffixlist import PublicSuffixList

_LABEL_RE = re.compile(r"^(?!-)[a-z0-9_-]{1,63}(?<!-)$")
_MAX_HOST_LENGTH = 253


class InvalidDomainError(ValueError):
    """Raised when a host string is not a domain name."""
    def __init__(self, host: str, reason: str):
        self.host = host
        super().__init__(f"Not a domain name: {host!r} ({reason})")


class ParsedUrl(NamedTuple):
    url: str
    scheme: str
    hostname: str


@lru_cache(maxsize=1)
def _public_suffix_list() -> PublicSuffixList:
    # Parsing the bundled list is the expensive part; do it once
    return PublicSuffixList()


def parse_domain_name(host: str) -> str:
    """
    Normalize a host into an ASCII, lowercase domain name.

    Raises:
        InvalidDomainError: For empty hosts, IP literals, or malformed labels
    """
    if not host:
        raise InvalidDomainError(host, "empty")

    candidate = host[:-1] if host.endswith(".") else host
    try:
        ipaddress.ip_address(candidate.strip("[]"))
    except ValueError:
        pass
    else:
        raise InvalidDomainError(host, "IP address")

    try:
        ascii_host = candidate.encode("idna").decode("ascii").lower()
    except UnicodeError as e:
        raise InvalidDomainError(host, f"IDNA encoding failed: {e}") from None

    if not ascii_host or len(ascii_host) > _MAX_HOST_LENGTH:
        raise InvalidDomainError(host, "bad length")
    for label in ascii_host.split("."):
        if not _LABEL_RE.match(label):
            raise InvalidDomainError(host, f"bad label {label!r}")
    return ascii_host


def registrable_domain(host: str) -> str:
    """
    Shortest right-hand part of `host` that is a registrable domain, in the
    normalized form parse_domain_name() produces (ASCII, lowercase, no
    trailing dot), so it is a suffix of the normalized host rather than of
    the raw input.

        registrable_domain("static.cdn.example.co.uk")  -> "example.co.uk"
        registrable_domain("a.test")                    -> "a.test"
        registrable_domain("WWW.Example.COM.")          -> "example.com"

    A host that is itself a public suffix (e.g. "localhost", "co.uk") has
    no registrable part below it and is returned as is.

    Raises:
        InvalidDomainError: If host cannot be parsed as a domain name
    """
    domain = parse_domain_name(host)
    return _public_suffix_list().privatesuffix(domain) or domain


def parse_url(url: str) -> Optional[ParsedUrl]:
    """
    Split a URL into (url, scheme, hostname).

    Returns None for URLs that do not parse, carry no host (data:, blob:,
    about:blank ...) or carry a host that is neither an IP address nor a
    domain name; callers treat those as absent data.
    """
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        return None
    if not parts.scheme or not hostname:
        return None
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        try:
            parse_domain_name(hostname)
        except InvalidDomainError:
            return None
    return ParsedUrl(url=url, scheme=parts.scheme, hostname=hostname)


def site_of(hostname: str) -> str:
    """
    Site key used for first/third-party decisions: the registrable domain,
    or the address itself for IP-literal hosts.
    """
    try:
        ipaddress.ip_address(hostname)
    except ValueError:
        return registrable_domain(hostname)
    return hostname
