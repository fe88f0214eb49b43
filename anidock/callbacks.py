"""Ready-made callbacks for crawl progress and output.

Progress callbacks match the (status, fraction) shape expected by
crawl_with_driver()'s on_progress parameter. Entry callbacks take one
CatalogEntry at a time.

Example::

    from anidock.callbacks import log_progress, save_entries_to_jsonl

    result = await crawl_with_driver(
        url, driver, fetch_html, on_progress=log_progress()
    )
    with open("catalog.jsonl", "w") as f:
        write = save_entries_to_jsonl(f)
        for entry in result.entries:
            write(entry)
"""

import json
import logging
from collections.abc import Callable
from typing import TextIO

from anidock.data_types import CatalogEntry, ProgressCallback


def log_progress(logger: logging.Logger | None = None) -> ProgressCallback:
    """Create a progress callback that logs each milestone at INFO."""
    log = logger or logging.getLogger(__name__)

    def callback(status: str, fraction: float) -> None:
        log.info(f"[{fraction:4.0%}] {status}")

    return callback


def print_progress(prefix: str = "") -> ProgressCallback:
    """Create a progress callback that prints each milestone to stdout.

    Args:
        prefix: Optional prefix to print before each line.
    """

    def callback(status: str, fraction: float) -> None:
        print(f"{prefix}[{fraction:4.0%}] {status}")

    return callback


def collect_progress(
    events: list[tuple[str, float]] | None = None,
) -> tuple[ProgressCallback, list[tuple[str, float]]]:
    """Create a progress callback that records every (status, fraction).

    Returns:
        The callback and the list it appends to.

    Example::

        on_progress, events = collect_progress()
        await crawl_with_driver(url, driver, fetch_html, on_progress)
        fractions = [fraction for _, fraction in events]
    """
    if events is None:
        events = []

    def callback(status: str, fraction: float) -> None:
        events.append((status, fraction))

    return callback, events


def save_entries_to_jsonl(file_handle: TextIO) -> Callable[[CatalogEntry], None]:
    """Create a callback that writes each entry as one JSON line.

    The caller is responsible for opening and closing the file. Entries
    are written in their camelCase JSON shape.
    """

    def callback(entry: CatalogEntry) -> None:
        json.dump(entry.to_json_dict(), file_handle, ensure_ascii=False)
        file_handle.write("\n")
        file_handle.flush()

    return callback
