"""Driver validation probe.

Checks a driver's selectors against three live pages before the driver is
trusted: the catalog page, the first entry page linked from it, and the
first sub-entry page linked from that. Each stage counts how many elements
every configured selector of that stage matches, then follows one link to
the next stage.

The probe is strictly sequential since each stage's URL comes from the
previous stage's page. When a stage breaks, everything gathered so far is
kept and returned along with a single error; nothing is persisted.
"""

from __future__ import annotations

import logging

from anidock.common.exceptions import FetchError, InvalidUrlError
from anidock.common.lxml_page_element import parse_document
from anidock.common.page_element import PageElement
from anidock.common.url_resolver import resolve_url
from anidock.data_types import (
    CATALOG_ROLES,
    ENTRY_PAGE_ROLES,
    SUB_ENTRY_PAGE_ROLES,
    FetchHtml,
    SelectorRole,
    SelectorSet,
    ValidationResult,
)
from anidock.extract.fields import href_of, is_anchor


def count_matches(
    document: PageElement,
    selectors: SelectorSet,
    roles: tuple[SelectorRole, ...],
) -> dict[SelectorRole, int]:
    """Count matches for every configured role among roles.

    Unconfigured roles are left out, so a count of 0 always means
    "configured but matched nothing".
    """
    return {
        role: len(document.query_all(selector))
        for role, selector in selectors.configured(roles).items()
    }


def extract_first_url(
    document: PageElement,
    container_selector: str | None,
    url_selector: str | None,
) -> str | None:
    """Return the first absolute link found in the list containers.

    Containers are tried in DOM order. Inside a container the url_selector
    is used when configured, otherwise the container itself when it is a
    link, otherwise its first <a href>. Without a container selector the
    whole document is searched.
    """
    if container_selector is None:
        containers = [document]
    else:
        containers = document.query_all(container_selector)

    for container in containers:
        if url_selector is not None:
            href = href_of(container.query_first(url_selector))
        elif is_anchor(container) and container is not document:
            href = href_of(container)
        else:
            href = href_of(container.query_first("a[href]"))
        if href is None:
            continue
        try:
            return resolve_url(href, document.url)
        except InvalidUrlError:
            continue
    return None


async def _fetch_document(
    url: str, fetch_html: FetchHtml, log: logging.Logger
) -> PageElement | None:
    try:
        return parse_document(await fetch_html(url), url, log)
    except FetchError as e:
        log.warning(f"Validation fetch failed: {e.message}", extra={"url": url})
        return None


async def validate_selectors(
    catalog_url: str,
    selectors: SelectorSet,
    fetch_html: FetchHtml,
    *,
    logger: logging.Logger | None = None,
) -> ValidationResult:
    """Run the three-stage validation probe.

    Args:
        catalog_url: Absolute URL of a catalog page.
        selectors: The selectors under test.
        fetch_html: Async callable returning the HTML of a URL.
        logger: Logger to use instead of the module logger.

    Returns:
        ValidationResult with counts for every stage that was reached,
        the URL of every page that was fetched, and at most one error.
    """
    log = logger or logging.getLogger(__name__)
    result = ValidationResult()

    catalog = await _fetch_document(catalog_url, fetch_html, log)
    if catalog is None:
        result.errors.append(f"Failed to fetch catalog page: {catalog_url}")
        return result
    result.pages.catalog = catalog_url
    result.counts.update(count_matches(catalog, selectors, CATALOG_ROLES))

    entry_url = extract_first_url(catalog, selectors.entry_list, selectors.entry_url)
    if entry_url is None:
        result.errors.append("Could not find anime URL on catalog page")
        return result

    entry = await _fetch_document(entry_url, fetch_html, log)
    if entry is None:
        result.errors.append(f"Failed to fetch anime page: {entry_url}")
        return result
    result.pages.entry = entry_url
    result.counts.update(count_matches(entry, selectors, ENTRY_PAGE_ROLES))

    sub_entry_url = extract_first_url(
        entry, selectors.sub_entry_list, selectors.sub_entry_url
    )
    if sub_entry_url is None:
        result.errors.append("Could not find episode URL on anime page")
        return result

    sub_entry = await _fetch_document(sub_entry_url, fetch_html, log)
    if sub_entry is None:
        result.errors.append(f"Failed to fetch episode page: {sub_entry_url}")
        return result
    result.pages.sub_entry = sub_entry_url
    result.counts.update(count_matches(sub_entry, selectors, SUB_ENTRY_PAGE_ROLES))

    log.info(
        f"Validated selectors against {catalog_url}: "
        f"{len(result.unmatched_roles())} role(s) matched nothing",
        extra={"url": catalog_url},
    )
    return result
