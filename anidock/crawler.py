"""Crawl orchestration: fetch a catalog page and extract its entries.

crawl_with_driver() is the public entry point used by callers that just
want "the catalog at this URL". It reports progress at fixed milestones:

    0.0  starting
    0.1  fetching the catalog page
    0.3  extracting entries
    1.0  done (also reported when the fetch failed)

The progress callback is invoked synchronously. Exceptions it raises are
logged and otherwise ignored; they never change the crawl result.
"""

from __future__ import annotations

import logging

from anidock.common.exceptions import FetchError
from anidock.common.lxml_page_element import parse_document
from anidock.data_types import (
    Clock,
    CrawlResult,
    Driver,
    FetchHtml,
    IdFactory,
    ProgressCallback,
    new_id,
    utc_now,
)
from anidock.extract.catalog import extract_catalog


def _report(
    on_progress: ProgressCallback | None,
    status: str,
    fraction: float,
    log: logging.Logger,
) -> None:
    if on_progress is None:
        return
    try:
        on_progress(status, fraction)
    except Exception:
        log.warning(
            f"Progress callback raised at {fraction:.0%}",
            exc_info=True,
            extra={"status": status},
        )


async def crawl_with_driver(
    url: str,
    driver: Driver,
    fetch_html: FetchHtml,
    on_progress: ProgressCallback | None = None,
    *,
    generate_id: IdFactory = new_id,
    now: Clock = utc_now,
    logger: logging.Logger | None = None,
) -> CrawlResult:
    """Crawl one catalog page with a driver.

    Args:
        url: Absolute URL of the catalog page.
        driver: Driver to extract with.
        fetch_html: Async callable returning the HTML of a URL.
        on_progress: Optional callback receiving (status, fraction).
        generate_id: Factory for entry ids.
        now: Clock for timestamps.
        logger: Logger to use instead of the module logger.

    Returns:
        CrawlResult. A failed fetch yields no entries and one error.
    """
    log = logger or logging.getLogger(__name__)
    label = driver.name or driver.id

    _report(on_progress, "Starting crawl...", 0.0, log)
    log.info(f"Crawling {url} with driver {label}", extra={"url": url})

    _report(on_progress, "Fetching catalog page...", 0.1, log)
    try:
        html_text = await fetch_html(url)
        document = parse_document(html_text, url, log)
    except FetchError as e:
        log.error(f"Crawl failed: {e.message}", extra={"url": url})
        _report(on_progress, "Crawl failed", 1.0, log)
        return CrawlResult(errors=[f"Crawl failed: {e.message}"])

    _report(on_progress, "Extracting entries...", 0.3, log)
    result = extract_catalog(
        document, driver, generate_id=generate_id, now=now, logger=log
    )

    _report(
        on_progress,
        f"Done: {len(result.entries)} entries, {len(result.errors)} errors",
        1.0,
        log,
    )
    return result
