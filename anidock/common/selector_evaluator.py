"""Lenient CSS selector evaluation over lxml trees.

Selector strings come from users or from a text-generation model, so they
are frequently wrong. This module evaluates them without ever letting a
bad selector escape as an exception: an empty, missing or syntactically
invalid selector yields zero matches.

Internally every evaluation produces a QueryOutcome that keeps the
SelectorSyntaxError (if any) so it can be logged; query_all() and
query_first() collapse that outcome to a plain element list.

Matching follows Element.querySelectorAll semantics: queries on an element
search its descendants only. Document-level queries pass include_self so
the root <html> element is a candidate too.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from cssselect import HTMLTranslator, SelectorError
from lxml import etree
from lxml.html import HtmlElement

from anidock.common.exceptions import SelectorSyntaxError

logger = logging.getLogger(__name__)

_translator = HTMLTranslator()


@dataclass(frozen=True)
class QueryOutcome:
    """Result of evaluating one selector against one root.

    Attributes:
        selector: The selector that was evaluated.
        elements: Matching elements in document order.
        error: The compile/evaluation error, if the selector was unusable.
    """

    selector: str
    elements: list[HtmlElement] = field(default_factory=list)
    error: SelectorSyntaxError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def compile_selector(selector: str, include_self: bool = False) -> etree.XPath:
    """Compile a CSS selector into a descendant-scoped XPath expression.

    Args:
        selector: CSS selector text.
        include_self: Whether the context element itself may match.

    Raises:
        SelectorSyntaxError: If cssselect or lxml rejects the selector.
    """
    prefix = "descendant-or-self::" if include_self else "descendant::"
    try:
        expression = _translator.css_to_xpath(selector, prefix=prefix)
        return etree.XPath(expression)
    except (SelectorError, etree.XPathError) as e:
        raise SelectorSyntaxError(selector, str(e)) from e


def evaluate(
    root: HtmlElement,
    selector: str | None,
    include_self: bool = False,
) -> QueryOutcome:
    """Evaluate selector against root, capturing any error in the outcome."""
    if selector is None or not selector.strip():
        return QueryOutcome(selector=selector or "")

    try:
        xpath = compile_selector(selector.strip(), include_self)
        results = xpath(root)
    except SelectorSyntaxError as e:
        return QueryOutcome(selector=selector, error=e)
    except etree.XPathError as e:
        return QueryOutcome(
            selector=selector, error=SelectorSyntaxError(selector, str(e))
        )

    # Only element nodes count; comments and processing instructions
    # have a non-string tag.
    elements = [
        result
        for result in results
        if isinstance(result, etree._Element) and isinstance(result.tag, str)
    ]
    return QueryOutcome(selector=selector, elements=elements)


def query_all(
    root: HtmlElement,
    selector: str | None,
    include_self: bool = False,
    log: logging.Logger | None = None,
) -> list[HtmlElement]:
    """Return all elements matching selector, in document order.

    Never raises for bad selectors. An invalid selector is logged at
    DEBUG level and yields an empty list.

    Args:
        root: The lxml element whose descendants are searched.
        selector: CSS selector text; None or blank yields no matches.
        include_self: Whether root itself may match.
        log: Logger for the diagnostic message; defaults to this module's.

    Returns:
        List of matching elements, possibly empty.
    """
    outcome = evaluate(root, selector, include_self)
    if outcome.error is not None:
        (log or logger).debug(
            f"Ignoring unusable selector: {outcome.error.message}",
            extra={"selector": outcome.selector},
        )
    return outcome.elements


def query_first(
    root: HtmlElement,
    selector: str | None,
    include_self: bool = False,
    log: logging.Logger | None = None,
) -> HtmlElement | None:
    """Return the first element matching selector, or None."""
    elements = query_all(root, selector, include_self, log)
    return elements[0] if elements else None
