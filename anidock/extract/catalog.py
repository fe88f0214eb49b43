"""Catalog extraction: turn a catalog page into CatalogEntry records.

The driver's entryList selector yields one container element per entry.
When no entryList is configured the page body is treated as the single
container, which is how drivers for "one title per page" sites work.

Each container is processed in isolation. A container that cannot produce
an entry (no URL, unresolvable URL) contributes one error string and the
remaining containers are still processed, so a crawl result is normally a
mix of entries and errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError
from typing_extensions import assert_never

from anidock.common.exceptions import (
    ExtractionException,
    InvalidUrlError,
    ItemExtractionError,
)
from anidock.common.page_element import PageElement
from anidock.common.url_resolver import resolve_url, slug_from_url
from anidock.data_types import (
    CatalogEntry,
    Clock,
    CrawlResult,
    Driver,
    IdFactory,
    new_id,
    utc_now,
)
from anidock.extract.diagnostics import (
    COMMON_ENTRY_SELECTORS,
    describe_empty_match,
    suggest_selector,
)
from anidock.extract.fields import (
    IMAGE_ATTRIBUTES,
    clean_text,
    first_attribute,
    href_of,
    is_anchor,
)


@dataclass(frozen=True)
class ExplicitList:
    """Containers matched by the driver's entryList selector."""

    selector: str
    elements: list[PageElement]


@dataclass(frozen=True)
class ImplicitSingle:
    """No entryList configured: the document body is the only container."""

    document: PageElement


Containers = ExplicitList | ImplicitSingle


def find_containers(document: PageElement, driver: Driver) -> Containers:
    """Locate entry containers on a catalog page."""
    selector = driver.selectors.entry_list
    if selector is None:
        return ImplicitSingle(document)
    return ExplicitList(selector, document.query_all(selector))


def container_elements(containers: Containers) -> list[PageElement]:
    match containers:
        case ExplicitList(elements=elements):
            return list(elements)
        case ImplicitSingle(document=document):
            return [document.body()]
        case _:
            assert_never(containers)


def describe_item_error(error: Exception, kind: str, index: int) -> str:
    """Render a per-item exception as a single-line error string."""
    if isinstance(error, ItemExtractionError):
        return error.message
    if isinstance(error, ValidationError):
        reason = "; ".join(detail["msg"] for detail in error.errors())
    elif isinstance(error, ExtractionException):
        reason = error.message
    else:
        reason = str(error)
    return f"{kind} {index}: {reason}"


def extract_catalog(
    document: PageElement,
    driver: Driver,
    *,
    generate_id: IdFactory = new_id,
    now: Clock = utc_now,
    logger: logging.Logger | None = None,
) -> CrawlResult:
    """Extract catalog entries from a parsed catalog page.

    Args:
        document: The parsed catalog page.
        driver: Driver whose selectors and base URL drive extraction.
        generate_id: Factory for entry ids.
        now: Clock used for timestamps and the crawled_at metadata.
        logger: Logger to use instead of the module logger.

    Returns:
        CrawlResult with entries in DOM order and one error per failed
        container. Never raises for page-content problems.
    """
    log = logger or logging.getLogger(__name__)
    containers = find_containers(document, driver)
    elements = container_elements(containers)

    if isinstance(containers, ExplicitList) and not elements:
        hint = suggest_selector(document, COMMON_ENTRY_SELECTORS)
        message = describe_empty_match("entries", containers.selector, hint)
        log.warning(
            message,
            extra={"url": document.url, "selector": containers.selector},
        )
        return CrawlResult(errors=[message])

    log.debug(
        f"Found {len(elements)} entry container(s) on {document.url}",
        extra={"url": document.url, "driver_id": driver.id},
    )

    entries: list[CatalogEntry] = []
    errors: list[str] = []
    for index, container in enumerate(elements, start=1):
        try:
            entries.append(
                _build_entry(
                    container, index, document.url, driver, generate_id, now, log
                )
            )
        except (ExtractionException, ValueError) as e:
            message = describe_item_error(e, "Entry", index)
            log.warning(
                f"Skipping container: {message}",
                extra={"url": document.url, "index": index},
            )
            errors.append(message)

    log.info(
        f"Extracted {len(entries)} entries ({len(errors)} errors) "
        f"from {document.url}",
        extra={"url": document.url, "driver_id": driver.id},
    )
    return CrawlResult(entries=entries, errors=errors)


def _build_entry(
    container: PageElement,
    index: int,
    page_url: str,
    driver: Driver,
    generate_id: IdFactory,
    now: Clock,
    log: logging.Logger,
) -> CatalogEntry:
    selectors = driver.selectors
    base_url = driver.config.base_url

    href = _entry_href(container, selectors.entry_url)
    if href is None:
        raise ItemExtractionError("Entry", index, "URL not found", url=page_url)
    source_url = resolve_url(href, base_url)

    timestamp = now()
    return CatalogEntry(
        id=generate_id(),
        driver_id=driver.id,
        title=_entry_title(container, selectors.entry_title, source_url, index),
        synopsis=_entry_synopsis(container, selectors.entry_synopsis),
        cover_url=_cover_url(container, selectors.entry_image, base_url, log),
        source_url=source_url,
        metadata={"crawled_at": timestamp, "driver_version": driver.version},
        created_at=timestamp,
        updated_at=timestamp,
    )


def _entry_href(container: PageElement, url_selector: str | None) -> str | None:
    if url_selector is None:
        # The container is expected to be the link itself.
        return href_of(container)
    return href_of(container.query_first(url_selector))


def _entry_title(
    container: PageElement,
    title_selector: str | None,
    source_url: str,
    index: int,
) -> str:
    """Title fallback chain: selector text, its title attribute, container
    anchor text, URL slug, positional placeholder."""
    if title_selector is not None:
        element = container.query_first(title_selector)
        title = clean_text(element)
        if title is None and element is not None:
            title = (element.get_attribute("title") or "").strip() or None
        if title is not None:
            return title

    if is_anchor(container):
        title = clean_text(container)
        if title is not None:
            return title

    return slug_from_url(source_url) or f"Entry {index}"


def _entry_synopsis(
    container: PageElement, synopsis_selector: str | None
) -> str | None:
    if synopsis_selector is None:
        return None
    element = container.query_first(synopsis_selector)
    if element is None:
        return None
    return element.text_content().strip() or None


def _cover_url(
    container: PageElement,
    image_selector: str | None,
    base_url: str,
    log: logging.Logger,
) -> str | None:
    if image_selector is None:
        return None
    src = first_attribute(container.query_first(image_selector), IMAGE_ATTRIBUTES)
    if src is None:
        return None
    try:
        return resolve_url(src, base_url)
    except InvalidUrlError as e:
        log.debug(f"Ignoring cover image: {e.message}")
        return None
