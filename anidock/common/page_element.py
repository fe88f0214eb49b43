"""PageElement protocol for driver-agnostic querying of parsed HTML.

The extractors never touch lxml directly; they talk to a PageElement,
which is the "document-like" capability the engine needs: lenient CSS
queries plus text and attribute access. LxmlPageElement is the standard
implementation.
"""

from __future__ import annotations

from typing import Protocol


class PageElement(Protocol):
    """Protocol for querying a parsed document or one of its elements.

    Query methods never raise for invalid selector syntax; they return an
    empty list (or None) instead.
    """

    @property
    def url(self) -> str:
        """URL of the page this element belongs to."""
        ...

    def query_all(self, selector: str | None) -> list[PageElement]:
        """Return all matches for selector within this element, in DOM order."""
        ...

    def query_first(self, selector: str | None) -> PageElement | None:
        """Return the first match for selector, or None."""
        ...

    def text_content(self) -> str:
        """Return the text content of the element and its descendants."""
        ...

    def get_attribute(self, name: str) -> str | None:
        """Return an attribute value, or None if it doesn't exist."""
        ...

    def tag_name(self) -> str:
        """Return the lowercase tag name (e.g. "div", "a")."""
        ...

    def body(self) -> PageElement:
        """Return the <body> of the owning document, or the root if absent."""
        ...
