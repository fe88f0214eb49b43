"""Data types for the driver-driven extraction engine.

This module defines the values exchanged between the engine and its
callers. They are designed to be:

1. Validated - pydantic models enforce the invariants the engine relies
   on (every emitted source URL is absolute).
2. Serializable - models dump to the camelCase JSON shape used by stored
   drivers and indexes, and accept both that shape and snake_case names.
3. Stateless - the engine never keeps these between calls; they are
   values passed in and returned.

Selector roles name the slots of a driver's configuration. They are
grouped by the page they apply to: the catalog page, an entry's own page,
and a sub-entry page.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from anidock.common.url_resolver import is_absolute_http_url

FetchHtml = Callable[[str], Awaitable[str]]
ProgressCallback = Callable[[str, float], None]
IdFactory = Callable[[], str]
Clock = Callable[[], str]


def new_id() -> str:
    """Default id factory: a random UUID4 string."""
    return str(uuid.uuid4())


def utc_now() -> str:
    """Default clock: the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class SelectorRole(str, Enum):
    """Named slots of a driver's selector configuration.

    Values are the camelCase keys used in driver JSON and in validation
    counts.
    """

    ENTRY_LIST = "entryList"
    ENTRY_TITLE = "entryTitle"
    ENTRY_IMAGE = "entryImage"
    ENTRY_SYNOPSIS = "entrySynopsis"
    ENTRY_URL = "entryUrl"
    ENTRY_PAGE_TITLE = "entryPageTitle"
    SUB_ENTRY_LIST = "subEntryList"
    SUB_ENTRY_NUMBER = "subEntryNumber"
    SUB_ENTRY_TITLE = "subEntryTitle"
    SUB_ENTRY_URL = "subEntryUrl"
    VIDEO_PLAYER = "videoPlayer"
    EXTERNAL_LINK = "externalLinkSelector"


CATALOG_ROLES: tuple[SelectorRole, ...] = (
    SelectorRole.ENTRY_LIST,
    SelectorRole.ENTRY_TITLE,
    SelectorRole.ENTRY_IMAGE,
    SelectorRole.ENTRY_SYNOPSIS,
    SelectorRole.ENTRY_URL,
)
ENTRY_PAGE_ROLES: tuple[SelectorRole, ...] = (
    SelectorRole.ENTRY_PAGE_TITLE,
    SelectorRole.SUB_ENTRY_LIST,
    SelectorRole.SUB_ENTRY_NUMBER,
    SelectorRole.SUB_ENTRY_TITLE,
    SelectorRole.SUB_ENTRY_URL,
)
SUB_ENTRY_PAGE_ROLES: tuple[SelectorRole, ...] = (
    SelectorRole.VIDEO_PLAYER,
    SelectorRole.EXTERNAL_LINK,
)


class AniDockModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using the camelCase wire names."""
        return self.model_dump(mode="json", by_alias=True)


def _selector_field(role: SelectorRole, *legacy: str) -> Any:
    """Declare a selector slot accepting its role key plus legacy names."""
    snake = "".join(
        f"_{char.lower()}" if char.isupper() else char for char in role.value
    )
    return Field(
        default=None,
        validation_alias=AliasChoices(role.value, snake, *legacy),
        serialization_alias=role.value,
    )


class SelectorSet(AniDockModel):
    """CSS selectors for every role of a driver.

    Blank strings are treated as "not configured". Drivers written for the
    older anime-site naming (animeList, episodeUrl...) are accepted.
    """

    entry_list: str | None = _selector_field(
        SelectorRole.ENTRY_LIST, "animeList"
    )
    entry_title: str | None = _selector_field(
        SelectorRole.ENTRY_TITLE, "animeTitle"
    )
    entry_image: str | None = _selector_field(
        SelectorRole.ENTRY_IMAGE, "animeImage"
    )
    entry_synopsis: str | None = _selector_field(
        SelectorRole.ENTRY_SYNOPSIS, "animeSynopsis"
    )
    entry_url: str | None = _selector_field(SelectorRole.ENTRY_URL, "animeUrl")
    entry_page_title: str | None = _selector_field(
        SelectorRole.ENTRY_PAGE_TITLE, "animePageTitle"
    )
    sub_entry_list: str | None = _selector_field(
        SelectorRole.SUB_ENTRY_LIST, "episodeList"
    )
    sub_entry_number: str | None = _selector_field(
        SelectorRole.SUB_ENTRY_NUMBER, "episodeNumber"
    )
    sub_entry_title: str | None = _selector_field(
        SelectorRole.SUB_ENTRY_TITLE, "episodeTitle"
    )
    sub_entry_url: str | None = _selector_field(
        SelectorRole.SUB_ENTRY_URL, "episodeUrl"
    )
    video_player: str | None = _selector_field(SelectorRole.VIDEO_PLAYER)
    external_link_selector: str | None = _selector_field(
        SelectorRole.EXTERNAL_LINK
    )

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def get(self, role: SelectorRole) -> str | None:
        """Return the selector configured for role, or None."""
        return getattr(self, _ROLE_FIELDS[role])

    def configured(
        self, roles: tuple[SelectorRole, ...] | None = None
    ) -> dict[SelectorRole, str]:
        """Return {role: selector} for every configured role (in role order)."""
        return {
            role: selector
            for role in roles or tuple(SelectorRole)
            if (selector := self.get(role)) is not None
        }


_ROLE_FIELDS: dict[SelectorRole, str] = {
    SelectorRole.ENTRY_LIST: "entry_list",
    SelectorRole.ENTRY_TITLE: "entry_title",
    SelectorRole.ENTRY_IMAGE: "entry_image",
    SelectorRole.ENTRY_SYNOPSIS: "entry_synopsis",
    SelectorRole.ENTRY_URL: "entry_url",
    SelectorRole.ENTRY_PAGE_TITLE: "entry_page_title",
    SelectorRole.SUB_ENTRY_LIST: "sub_entry_list",
    SelectorRole.SUB_ENTRY_NUMBER: "sub_entry_number",
    SelectorRole.SUB_ENTRY_TITLE: "sub_entry_title",
    SelectorRole.SUB_ENTRY_URL: "sub_entry_url",
    SelectorRole.VIDEO_PLAYER: "video_player",
    SelectorRole.EXTERNAL_LINK: "external_link_selector",
}


class PaginationHints(AniDockModel):
    """Pagination hints. Declared for drivers; the engine does not walk pages."""

    next_button: str | None = None
    page_param: str | None = None


class DriverConfig(AniDockModel):
    """Extraction recipe: where relative URLs resolve and what to select."""

    base_url: str
    selectors: SelectorSet = Field(default_factory=SelectorSet)
    pagination: PaginationHints | None = None
    requires_external_link: bool = False


class SubEntry(AniDockModel):
    """One unit (episode) belonging to a catalog entry.

    Attributes:
        id: Generated opaque id.
        number: Order within the entry; unique per entry, not necessarily
            contiguous.
        title: Optional title.
        source_url: Absolute http(s) URL of the sub-entry page.
        thumbnail_url: Optional thumbnail URL.
        watched: Whether the user has watched it.
        watched_at: ISO-8601 timestamp of when it was marked watched.
    """

    id: str
    number: int = Field(
        ge=0, validation_alias=AliasChoices("number", "episodeNumber")
    )
    title: str | None = None
    source_url: str
    thumbnail_url: str | None = None
    watched: bool = False
    watched_at: str | None = None

    @field_validator("source_url")
    @classmethod
    def _require_absolute_source(cls, value: str) -> str:
        if not is_absolute_http_url(value):
            raise ValueError(
                f"source_url must be an absolute http(s) URL, got {value!r}"
            )
        return value


class CatalogEntry(AniDockModel):
    """One indexed media title extracted from a catalog page.

    The sub_entries list is a point-in-time snapshot; it starts empty and
    is filled on demand by the sub-entry extractor.
    """

    id: str
    driver_id: str
    title: str
    alternative_titles: list[str] = Field(default_factory=list)
    synopsis: str | None = None
    cover_url: str | None = None
    source_url: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    sub_entries: list[SubEntry] = Field(
        default_factory=list,
        validation_alias=AliasChoices("subEntries", "sub_entries", "episodes"),
    )
    created_at: str
    updated_at: str

    @field_validator("source_url")
    @classmethod
    def _require_absolute_source(cls, value: str) -> str:
        if not is_absolute_http_url(value):
            raise ValueError(
                f"source_url must be an absolute http(s) URL, got {value!r}"
            )
        return value

    @field_validator("cover_url")
    @classmethod
    def _require_absolute_cover(cls, value: str | None) -> str | None:
        if value is not None and not is_absolute_http_url(value):
            raise ValueError(
                f"cover_url must be an absolute http(s) URL, got {value!r}"
            )
        return value


class Driver(AniDockModel):
    """A named, versioned extraction recipe for one website.

    The indexing fields hold the last extraction snapshot once a caller
    persists one; the engine itself never writes them.
    """

    id: str
    name: str = ""
    domain: str = ""
    version: str = "1.0.0"
    author: str | None = None
    config: DriverConfig
    is_local: bool = True
    created_at: str | None = None
    updated_at: str | None = None
    indexed_data: list[CatalogEntry] = Field(default_factory=list)
    source_url: str | None = None
    total_entries: int | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "totalEntries", "total_entries", "totalAnimes"
        ),
    )
    last_indexed_at: str | None = None

    @property
    def selectors(self) -> SelectorSet:
        return self.config.selectors


class CrawlResult(AniDockModel):
    """Entries extracted from one catalog page plus non-fatal errors.

    Partial success is the normal case; callers should only look at
    whether errors is empty, never at its wording.
    """

    entries: list[CatalogEntry] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class SubEntryResult(AniDockModel):
    """Sub-entries of one entry plus non-fatal errors.

    Attributes:
        cached: True when existing sub-entries were returned without
            fetching.
    """

    sub_entries: list[SubEntry] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    cached: bool = False


class ValidationPages(AniDockModel):
    """The page URLs the validation probe reached (None = not reached)."""

    catalog: str | None = None
    entry: str | None = None
    sub_entry: str | None = None


class ValidationResult(AniDockModel):
    """Outcome of the three-stage validation probe.

    A role absent from counts was not configured; a count of 0 means the
    selector was configured but matched nothing.
    """

    counts: dict[SelectorRole, int] = Field(default_factory=dict)
    pages: ValidationPages = Field(default_factory=ValidationPages)
    errors: list[str] = Field(default_factory=list)

    def unmatched_roles(self) -> list[SelectorRole]:
        """Roles that were counted but matched nothing."""
        return [role for role, count in self.counts.items() if count == 0]


class VideoType(Enum):
    """How a sub-entry's video is reachable."""

    IFRAME = "iframe"
    VIDEO = "video"
    EXTERNAL = "external"


class VideoLinkResult(AniDockModel):
    """Video link found on a sub-entry page."""

    video_url: str | None = None
    video_type: VideoType = VideoType.EXTERNAL
    errors: list[str] = Field(default_factory=list)
