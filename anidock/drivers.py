"""Driver loading and the reference example driver.

Drivers are plain JSON documents. Both this package's selector names
(entryList, subEntryUrl, ...) and the older anime-site names (animeList,
episodeUrl, ...) are accepted on input; output always uses the former.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from anidock.common.exceptions import DriverConfigError
from anidock.common.url_resolver import is_absolute_http_url
from anidock.data_types import (
    Clock,
    Driver,
    DriverConfig,
    PaginationHints,
    SelectorSet,
    utc_now,
)


def create_example_driver(now: Clock = utc_now) -> Driver:
    """Return the reference driver for a conventional anime catalog site."""
    timestamp = now()
    return Driver(
        id=f"example_{time.time_ns() // 1_000_000}",
        name="Example Anime Site",
        domain="example.com",
        version="1.0.0",
        author="AniDock",
        config=DriverConfig(
            base_url="https://example.com",
            selectors=SelectorSet(
                entry_list=".anime-card",
                entry_title=".anime-title",
                entry_image=".anime-cover img",
                entry_synopsis=".anime-synopsis",
                entry_url="a.anime-link",
                sub_entry_list=".episode-item",
                sub_entry_number=".ep-number",
                sub_entry_title=".ep-title",
                sub_entry_url="a.ep-link",
                video_player="iframe, video",
            ),
            pagination=PaginationHints(next_button=".next-page", page_param="page"),
        ),
        is_local=True,
        created_at=timestamp,
        updated_at=timestamp,
    )


def driver_from_mapping(data: dict[str, Any], source: str = "") -> Driver:
    """Build a Driver from a decoded JSON mapping.

    Args:
        data: Driver document.
        source: Where the document came from, for error messages.

    Raises:
        DriverConfigError: If the document is not a valid driver or its
            base URL is not an absolute http(s) URL.
    """
    if not isinstance(data, dict):
        raise DriverConfigError(
            f"Driver document must be a JSON object, got {type(data).__name__}",
            source=source,
        )
    try:
        driver = Driver.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise DriverConfigError(f"Invalid driver: {problems}", source=source) from e

    if not is_absolute_http_url(driver.config.base_url):
        raise DriverConfigError(
            f"Driver baseUrl must be an absolute http(s) URL, "
            f"got {driver.config.base_url!r}",
            source=source,
        )
    return driver


def load_driver(path: Path | str) -> Driver:
    """Load a driver from a JSON file.

    Raises:
        DriverConfigError: If the file cannot be read, is not JSON, or is
            not a valid driver.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise DriverConfigError(
            f"Cannot read driver file: {e}", source=str(path)
        ) from e
    except json.JSONDecodeError as e:
        raise DriverConfigError(
            f"Driver file is not valid JSON: {e}", source=str(path)
        ) from e
    return driver_from_mapping(data, source=str(path))


def dump_driver(driver: Driver) -> str:
    """Serialize a driver to indented JSON using the current field names."""
    return json.dumps(driver.to_json_dict(), indent=2, ensure_ascii=False)
