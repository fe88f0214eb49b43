"""Heuristic selector probing for clearer error messages.

When a configured list selector matches nothing, a short fixed list of
commonly-seen class patterns is tried against the same page. A hit only
improves the error message (it usually means the driver's selector is
stale); it never contributes entries or sub-entries to a result.
"""

from __future__ import annotations

from dataclasses import dataclass

from anidock.common.page_element import PageElement

COMMON_ENTRY_SELECTORS: tuple[str, ...] = (
    "article",
    ".anime-item",
    ".anime-card",
    ".item",
)

COMMON_SUB_ENTRY_SELECTORS: tuple[str, ...] = (
    ".animepag_episodios_item",
    ".episode-item",
    ".episode",
    ".ep-item",
    '[class*="episode"]',
    '[class*="ep-"]',
)


@dataclass(frozen=True)
class SelectorHint:
    """A fallback selector that matched where the configured one did not."""

    selector: str
    match_count: int


def suggest_selector(
    document: PageElement, candidates: tuple[str, ...]
) -> SelectorHint | None:
    """Return the first candidate selector with at least one match."""
    for candidate in candidates:
        count = len(document.query_all(candidate))
        if count:
            return SelectorHint(selector=candidate, match_count=count)
    return None


def describe_empty_match(
    kind: str, selector: str, hint: SelectorHint | None
) -> str:
    """Build the error string for a list selector that matched nothing.

    Args:
        kind: Plural noun for what was looked for ("entries", "sub-entries").
        selector: The configured selector.
        hint: Result of suggest_selector(), if any.
    """
    message = f"No {kind} found for selector '{selector}'"
    if hint is not None:
        message += (
            f"; '{hint.selector}' matched {hint.match_count} element(s), "
            "the driver's selector may need updating"
        )
    return message
