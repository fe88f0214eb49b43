"""Small field readers shared by the extractors and the validation probe."""

from __future__ import annotations

import re

from anidock.common.page_element import PageElement

_DIGITS_RE = re.compile(r"\d+")

# Lazy-loading scripts keep the real image URL in a data attribute and
# put a tiny inline placeholder in src.
IMAGE_ATTRIBUTES: tuple[str, ...] = ("src", "data-src", "data-lazy-src")
LINK_ATTRIBUTES: tuple[str, ...] = ("href", "data-href")


def clean_text(element: PageElement | None) -> str | None:
    """Return the element's text with whitespace collapsed, or None if blank."""
    if element is None:
        return None
    text = " ".join(element.text_content().split())
    return text or None


def first_attribute(
    element: PageElement | None, names: tuple[str, ...]
) -> str | None:
    """Return the first non-blank, non-placeholder attribute among names."""
    if element is None:
        return None
    for name in names:
        value = (element.get_attribute(name) or "").strip()
        if value and not value.lower().startswith("data:"):
            return value
    return None


def href_of(element: PageElement | None) -> str | None:
    """Return the link target of an anchor-like element."""
    return first_attribute(element, LINK_ATTRIBUTES)


def is_anchor(element: PageElement) -> bool:
    """True if element is an <a> or otherwise carries a link attribute."""
    return element.tag_name() == "a" or href_of(element) is not None


def first_number(text: str | None) -> int | None:
    """Parse the first run of digits in text.

    Examples:
        >>> first_number("Episode 12 - Part 2")
        12
        >>> first_number("Special") is None
        True
    """
    if not text:
        return None
    match = _DIGITS_RE.search(text)
    return int(match.group()) if match else None
