"""Sub-entry extraction: list the episodes of one catalog entry.

extract_sub_entries() is the on-demand operation: it returns an entry's
existing sub-entries untouched when there are any, and otherwise fetches
the entry page and parses it with parse_sub_entries().

index_sub_entries() composes independent extract_sub_entries() calls for
a whole catalog with bounded concurrency.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from anidock.common.exceptions import (
    ExtractionException,
    FetchError,
    ItemExtractionError,
)
from anidock.common.lxml_page_element import parse_document
from anidock.common.page_element import PageElement
from anidock.common.url_resolver import resolve_url
from anidock.data_types import (
    CatalogEntry,
    Clock,
    CrawlResult,
    Driver,
    FetchHtml,
    IdFactory,
    SubEntry,
    SubEntryResult,
    new_id,
    utc_now,
)
from anidock.extract.catalog import describe_item_error
from anidock.extract.diagnostics import (
    COMMON_SUB_ENTRY_SELECTORS,
    describe_empty_match,
    suggest_selector,
)
from anidock.extract.fields import clean_text, first_number, href_of


async def extract_sub_entries(
    entry_url: str,
    driver: Driver,
    existing_sub_entries: Sequence[SubEntry],
    fetch_html: FetchHtml,
    *,
    generate_id: IdFactory = new_id,
    logger: logging.Logger | None = None,
) -> SubEntryResult:
    """Return the sub-entries of the entry at entry_url.

    Existing sub-entries act as a cache: when the sequence is non-empty it
    is returned as-is, flagged cached, and nothing is fetched.

    Args:
        entry_url: Absolute URL of the entry's own page.
        driver: Driver providing the sub-entry selectors.
        existing_sub_entries: Sub-entries already known for the entry.
        fetch_html: Async callable returning the HTML of a URL.
        generate_id: Factory for sub-entry ids.
        logger: Logger to use instead of the module logger.

    Returns:
        SubEntryResult in DOM order. A failed fetch yields no sub-entries
        and a single error.
    """
    log = logger or logging.getLogger(__name__)

    if existing_sub_entries:
        log.debug(
            f"Using {len(existing_sub_entries)} cached sub-entries for {entry_url}",
            extra={"url": entry_url},
        )
        return SubEntryResult(sub_entries=list(existing_sub_entries), cached=True)

    selectors = driver.selectors
    if selectors.sub_entry_list is None or selectors.sub_entry_url is None:
        message = (
            f"Driver '{driver.id}' has no sub-entry selectors configured "
            "(subEntryList and subEntryUrl are required)"
        )
        log.warning(message, extra={"driver_id": driver.id})
        return SubEntryResult(errors=[message])

    try:
        html_text = await fetch_html(entry_url)
        document = parse_document(html_text, entry_url, log)
    except FetchError as e:
        log.error(
            f"Failed to fetch entry page: {e.message}",
            extra={"url": entry_url},
        )
        return SubEntryResult(
            errors=[f"Failed to fetch entry page {entry_url}: {e.message}"]
        )

    return parse_sub_entries(
        document, entry_url, driver, generate_id=generate_id, logger=log
    )


def parse_sub_entries(
    document: PageElement,
    entry_url: str,
    driver: Driver,
    *,
    generate_id: IdFactory = new_id,
    logger: logging.Logger | None = None,
) -> SubEntryResult:
    """Parse sub-entries out of an already-fetched entry page.

    Sub-entry URLs resolve against the origin of entry_url, not the
    driver's base URL.
    """
    log = logger or logging.getLogger(__name__)
    selectors = driver.selectors
    list_selector = selectors.sub_entry_list or ""

    items = document.query_all(list_selector)
    if not items:
        hint = suggest_selector(document, COMMON_SUB_ENTRY_SELECTORS)
        message = describe_empty_match("sub-entries", list_selector, hint)
        log.warning(message, extra={"url": entry_url, "selector": list_selector})
        # An entry without episodes is legitimate; only report an error
        # when the page visibly has sub-entry-like markup.
        return SubEntryResult(errors=[message] if hint is not None else [])

    sub_entries: list[SubEntry] = []
    errors: list[str] = []
    seen_numbers: set[int] = set()
    for index, item in enumerate(items, start=1):
        try:
            sub_entry = _build_sub_entry(
                item, index, entry_url, driver, generate_id
            )
            if sub_entry.number in seen_numbers:
                raise ItemExtractionError(
                    "Sub-entry",
                    index,
                    f"duplicate number {sub_entry.number}",
                    url=entry_url,
                )
        except (ExtractionException, ValueError) as e:
            message = describe_item_error(e, "Sub-entry", index)
            log.warning(
                f"Skipping sub-entry: {message}",
                extra={"url": entry_url, "index": index},
            )
            errors.append(message)
            continue
        seen_numbers.add(sub_entry.number)
        sub_entries.append(sub_entry)

    log.info(
        f"Extracted {len(sub_entries)} sub-entries ({len(errors)} errors) "
        f"from {entry_url}",
        extra={"url": entry_url, "driver_id": driver.id},
    )
    return SubEntryResult(sub_entries=sub_entries, errors=errors)


def _build_sub_entry(
    item: PageElement,
    index: int,
    entry_url: str,
    driver: Driver,
    generate_id: IdFactory,
) -> SubEntry:
    selectors = driver.selectors

    number = None
    if selectors.sub_entry_number is not None:
        number = first_number(clean_text(item.query_first(selectors.sub_entry_number)))

    href = href_of(item.query_first(selectors.sub_entry_url))
    if href is None:
        raise ItemExtractionError("Sub-entry", index, "URL not found", url=entry_url)

    title = None
    if selectors.sub_entry_title is not None:
        title = clean_text(item.query_first(selectors.sub_entry_title))

    return SubEntry(
        id=generate_id(),
        number=index if number is None else number,
        title=title,
        source_url=resolve_url(href, entry_url),
        watched=False,
    )


async def index_sub_entries(
    entries: Sequence[CatalogEntry],
    driver: Driver,
    fetch_html: FetchHtml,
    num_workers: int = 4,
    *,
    generate_id: IdFactory = new_id,
    now: Clock = utc_now,
    logger: logging.Logger | None = None,
) -> CrawlResult:
    """Fill in the sub-entries of many catalog entries concurrently.

    Each entry goes through extract_sub_entries(), so entries that already
    have sub-entries are not refetched. At most num_workers entry pages
    are fetched at once.

    Args:
        entries: Catalog entries, typically from a crawl.
        driver: Driver providing the sub-entry selectors.
        fetch_html: Async callable returning the HTML of a URL.
        num_workers: Maximum number of concurrent fetches.
        generate_id: Factory for sub-entry ids.
        now: Clock used to refresh updated_at on changed entries.
        logger: Logger to use instead of the module logger.

    Returns:
        CrawlResult with new entry objects in input order and every error
        prefixed by the title of the entry it belongs to.

    Raises:
        ValueError: If num_workers is less than 1.
    """
    if num_workers < 1:
        raise ValueError(f"num_workers must be at least 1, got {num_workers}")

    log = logger or logging.getLogger(__name__)
    semaphore = asyncio.Semaphore(num_workers)

    async def index_one(entry: CatalogEntry) -> tuple[CatalogEntry, list[str]]:
        async with semaphore:
            result = await extract_sub_entries(
                entry.source_url,
                driver,
                entry.sub_entries,
                fetch_html,
                generate_id=generate_id,
                logger=log,
            )
        errors = [f"{entry.title}: {error}" for error in result.errors]
        if result.cached or not result.sub_entries:
            return entry.model_copy(), errors
        updated = entry.model_copy(
            update={"sub_entries": result.sub_entries, "updated_at": now()}
        )
        return updated, errors

    outcomes = await asyncio.gather(
        *(index_one(entry) for entry in entries), return_exceptions=True
    )

    indexed: list[CatalogEntry] = []
    errors: list[str] = []
    for entry, outcome in zip(entries, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            log.error(
                f"Indexing {entry.title} failed: {outcome}",
                exc_info=outcome,
                extra={"url": entry.source_url},
            )
            indexed.append(entry.model_copy())
            errors.append(f"{entry.title}: {outcome}")
            continue
        updated, entry_errors = outcome
        indexed.append(updated)
        errors.extend(entry_errors)

    log.info(
        f"Indexed sub-entries for {len(indexed)} entries ({len(errors)} errors)",
        extra={"driver_id": driver.id},
    )
    return CrawlResult(entries=indexed, errors=errors)
