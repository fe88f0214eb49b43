"""URL normalization helpers.

Every URL the engine emits goes through resolve_url(), so entries and
sub-entries always carry absolute http(s) URLs.
"""

from __future__ import annotations

import re
from urllib.parse import unquote, urljoin, urlparse

from anidock.common.exceptions import InvalidUrlError

_HTTP_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_ANY_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")


def is_absolute_http_url(url: str) -> bool:
    """Return True if url is http(s) with a usable host and port.

    Examples:
        >>> is_absolute_http_url("https://site.test:8080/a")
        True
        >>> is_absolute_http_url("https://site.test:abc/a")
        False
    """
    if not _HTTP_SCHEME_RE.match(url):
        return False
    parsed = urlparse(url)
    if not parsed.hostname:
        return False
    if any(char.isspace() or not char.isprintable() for char in parsed.netloc):
        return False
    try:
        parsed.port
    except ValueError:
        return False
    return True


def origin_of(base_url: str) -> str:
    """Return the scheme://host[:port] origin of base_url.

    Raises:
        InvalidUrlError: If base_url is not an absolute http(s) URL.
    """
    parsed = urlparse(base_url.strip())
    if not is_absolute_http_url(base_url.strip()):
        raise InvalidUrlError("", base_url, "base URL is not absolute")
    return f"{parsed.scheme.lower()}://{parsed.netloc}"


def resolve_url(href: str, base_url: str) -> str:
    """Normalize a possibly-relative href into an absolute URL.

    Absolute http(s) hrefs are returned unchanged. Protocol-relative hrefs
    ("//cdn.example/x") take the base URL's scheme. Root-relative hrefs
    ("/a/b") and path-relative hrefs ("a/b", "../a") are composed against
    the base URL's origin.

    Args:
        href: The raw href/src attribute value.
        base_url: The URL whose origin relative hrefs are resolved against.

    Returns:
        An absolute http(s) URL.

    Raises:
        InvalidUrlError: If href is empty, a bare fragment, uses a non-http
            scheme (javascript:, mailto:, data:...), or base_url cannot be
            parsed as an absolute URL.

    Examples:
        >>> resolve_url("/a", "https://site.test/catalog")
        'https://site.test/a'
        >>> resolve_url("ep-1", "https://site.test/anime/x")
        'https://site.test/ep-1'
        >>> resolve_url("https://other.test/x", "https://site.test")
        'https://other.test/x'
    """
    href = href.strip()
    if not href:
        raise InvalidUrlError(href, base_url, "empty href")

    if _HTTP_SCHEME_RE.match(href):
        if not is_absolute_http_url(href):
            raise InvalidUrlError(href, base_url, "malformed host or port")
        return href

    if href.startswith("#"):
        raise InvalidUrlError(href, base_url, "fragment-only href")

    if not href.startswith("//") and _ANY_SCHEME_RE.match(href):
        raise InvalidUrlError(href, base_url, "unsupported URL scheme")

    try:
        origin = origin_of(base_url)
    except InvalidUrlError as e:
        raise InvalidUrlError(
            href, base_url, "base URL is not absolute"
        ) from e

    if href.startswith("//"):
        scheme = origin.split(":", 1)[0]
        return f"{scheme}:{href}"

    # urljoin handles "./" and "../" segments; the trailing slash makes a
    # path-relative href land directly under the origin.
    return urljoin(origin + "/", href)


def slug_from_url(url: str) -> str | None:
    """Return the last non-empty path segment of url, percent-decoded.

    Examples:
        >>> slug_from_url("https://x.test/anime/my-title")
        'my-title'
        >>> slug_from_url("https://x.test/anime/my-title/") is None
        False
        >>> slug_from_url("https://x.test/") is None
        True
    """
    segments = [segment for segment in urlparse(url).path.split("/") if segment]
    if not segments:
        return None
    return unquote(segments[-1])
