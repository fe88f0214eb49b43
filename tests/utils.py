"""Test utilities for extraction tests.

This module provides an in-memory fetch_html capability and small factories
for drivers, ids and clocks, so extraction tests run without a network.
"""

import itertools
from collections.abc import Callable

from anidock.common.exceptions import FetchError, HTTPStatusFetchError
from anidock.data_types import Driver, DriverConfig, SelectorSet

FIXED_NOW = "2025-01-01T00:00:00+00:00"


class StaticFetcher:
    """fetch_html stand-in serving canned pages and counting calls.

    Unknown URLs fail with HTTPStatusFetchError(404); URLs listed in
    failures fail with FetchError.

    Example:
        fetch_html = StaticFetcher({"https://site.test/": "<html>...</html>"})
        result = await crawl_with_driver("https://site.test/", driver, fetch_html)
        assert fetch_html.calls == ["https://site.test/"]
    """

    def __init__(
        self,
        pages: dict[str, str] | None = None,
        failures: set[str] | None = None,
    ) -> None:
        self.pages = dict(pages or {})
        self.failures = set(failures or ())
        self.calls: list[str] = []

    async def __call__(self, url: str) -> str:
        self.calls.append(url)
        if url in self.failures:
            raise FetchError(url, f"Connection refused: {url}")
        if url not in self.pages:
            raise HTTPStatusFetchError(url, 404)
        return self.pages[url]


def make_driver(
    base_url: str = "https://site.test",
    driver_id: str = "test-driver",
    version: str = "1.0.0",
    **selectors: str,
) -> Driver:
    """Build a Driver from snake_case selector keyword arguments."""
    return Driver(
        id=driver_id,
        name="Test Site",
        domain="site.test",
        version=version,
        config=DriverConfig(base_url=base_url, selectors=SelectorSet(**selectors)),
    )


def sequential_ids(prefix: str = "id") -> Callable[[], str]:
    """Create an id factory yielding prefix-1, prefix-2, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def fixed_clock() -> str:
    """Clock that always returns FIXED_NOW."""
    return FIXED_NOW


def page(body: str, title: str = "Test") -> str:
    """Wrap body markup in a minimal HTML document."""
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"
