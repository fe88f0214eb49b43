"""LxmlPageElement implementation of the PageElement protocol.

This module wraps lxml.html elements and routes every query through the
lenient selector evaluator, so third-party selector strings can never
crash an extraction.
"""

from __future__ import annotations

import logging

from lxml import etree, html
from lxml.html import HtmlElement

from anidock.common.exceptions import DocumentParseError
from anidock.common.selector_evaluator import query_all

logger = logging.getLogger(__name__)

# Text is re-encoded to UTF-8 bytes so pages carrying an XML declaration parse.
_PARSER = html.HTMLParser(encoding="utf-8")


def parse_document(
    html_text: str,
    url: str = "",
    log: logging.Logger | None = None,
) -> LxmlPageElement:
    """Parse an HTML string into a document-level LxmlPageElement.

    Parsing is lenient: lxml repairs malformed markup. Only input that
    yields no document at all is rejected.

    Args:
        html_text: Raw HTML.
        url: URL the HTML was fetched from (kept for relative-URL handling).
        log: Logger passed down to selector evaluation.

    Returns:
        LxmlPageElement wrapping the document root.

    Raises:
        DocumentParseError: If the content cannot be parsed at all.
    """
    if not html_text or not html_text.strip():
        raise DocumentParseError(url, "empty document")

    try:
        root = html.document_fromstring(html_text.encode("utf-8"), parser=_PARSER)
    except (etree.LxmlError, ValueError) as e:
        raise DocumentParseError(url, str(e)) from e

    return LxmlPageElement(root, url, is_document=True, log=log)


class LxmlPageElement:
    """PageElement backed by an lxml HtmlElement.

    Attributes:
        _element: The wrapped lxml element.
        _url: URL of the page the element came from.
        _is_document: True for the document root, whose own element is a
            valid query match.
        _log: Logger for selector diagnostics.
    """

    def __init__(
        self,
        element: HtmlElement,
        url: str = "",
        is_document: bool = False,
        log: logging.Logger | None = None,
    ) -> None:
        self._element = element
        self._url = url
        self._is_document = is_document
        self._log = log or logger

    @property
    def url(self) -> str:
        return self._url

    @property
    def element(self) -> HtmlElement:
        """The underlying lxml element."""
        return self._element

    def query_all(self, selector: str | None) -> list[LxmlPageElement]:
        """Return all matches for selector within this element, in DOM order."""
        return [
            LxmlPageElement(match, self._url, log=self._log)
            for match in query_all(
                self._element,
                selector,
                include_self=self._is_document,
                log=self._log,
            )
        ]

    def query_first(self, selector: str | None) -> LxmlPageElement | None:
        """Return the first match for selector, or None."""
        matches = self.query_all(selector)
        return matches[0] if matches else None

    def text_content(self) -> str:
        return self._element.text_content()

    def get_attribute(self, name: str) -> str | None:
        return self._element.get(name)

    def tag_name(self) -> str:
        return str(self._element.tag).lower()

    def body(self) -> LxmlPageElement:
        """Return the document's <body>, falling back to the root element."""
        root = self._element.getroottree().getroot()
        body = root.find("body")
        return LxmlPageElement(
            body if body is not None else root, self._url, log=self._log
        )

    def __repr__(self) -> str:
        return f"<LxmlPageElement {self.tag_name()} url={self._url!r}>"
