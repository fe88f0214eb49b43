"""Video link extraction from a sub-entry (episode) page."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from anidock.common.exceptions import FetchError, InvalidUrlError
from anidock.common.lxml_page_element import parse_document
from anidock.common.page_element import PageElement
from anidock.common.url_resolver import resolve_url
from anidock.data_types import Driver, FetchHtml, VideoLinkResult, VideoType
from anidock.extract.fields import LINK_ATTRIBUTES, first_attribute

VIDEO_TAG_SELECTOR = "video source, video"
DEFAULT_PLAYER_SELECTOR = (
    'iframe[src*="player"], iframe[src*="embed"], iframe[src*="video"]'
)

_MEDIA_TAGS = frozenset({"video", "source"})


@dataclass(frozen=True)
class _Strategy:
    selector: str | None
    attributes: tuple[str, ...]
    video_type: VideoType


def _strategies(driver: Driver) -> list[_Strategy]:
    selectors = driver.selectors
    return [
        _Strategy(selectors.video_player, ("src", "data-src"), VideoType.IFRAME),
        _Strategy(VIDEO_TAG_SELECTOR, ("src",), VideoType.VIDEO),
        _Strategy(
            selectors.external_link_selector, LINK_ATTRIBUTES, VideoType.EXTERNAL
        ),
        _Strategy(DEFAULT_PLAYER_SELECTOR, ("src",), VideoType.IFRAME),
    ]


def parse_video_link(
    document: PageElement,
    driver: Driver,
    logger: logging.Logger | None = None,
) -> VideoLinkResult:
    """Find the video link on a parsed sub-entry page.

    Strategies are tried in order: the driver's videoPlayer selector, a
    native <video> element, the driver's externalLinkSelector, then common
    embedded-player iframes. Within a strategy the first match carrying a
    usable URL wins.
    """
    log = logger or logging.getLogger(__name__)

    for strategy in _strategies(driver):
        if strategy.selector is None:
            continue
        for element in document.query_all(strategy.selector):
            raw = first_attribute(element, strategy.attributes)
            if raw is None:
                continue
            try:
                video_url = resolve_url(raw, document.url)
            except InvalidUrlError as e:
                log.debug(f"Ignoring video candidate: {e.message}")
                continue
            video_type = strategy.video_type
            if video_type is VideoType.IFRAME and element.tag_name() in _MEDIA_TAGS:
                video_type = VideoType.VIDEO
            log.debug(
                f"Found {video_type.value} link via '{strategy.selector}'",
                extra={"url": document.url, "video_url": video_url},
            )
            return VideoLinkResult(video_url=video_url, video_type=video_type)

    message = f"No video link found on {document.url}"
    log.warning(message, extra={"url": document.url})
    return VideoLinkResult(errors=[message])


async def extract_video_link(
    sub_entry_url: str,
    driver: Driver,
    fetch_html: FetchHtml,
    *,
    logger: logging.Logger | None = None,
) -> VideoLinkResult:
    """Fetch a sub-entry page and find its video link.

    Args:
        sub_entry_url: Absolute URL of the sub-entry page.
        driver: Driver providing videoPlayer / externalLinkSelector.
        fetch_html: Async callable returning the HTML of a URL.
        logger: Logger to use instead of the module logger.

    Returns:
        VideoLinkResult. On fetch failure or when nothing is found,
        video_url is None and errors holds one message.
    """
    log = logger or logging.getLogger(__name__)
    try:
        html_text = await fetch_html(sub_entry_url)
        document = parse_document(html_text, sub_entry_url, log)
    except FetchError as e:
        log.error(
            f"Failed to fetch sub-entry page: {e.message}",
            extra={"url": sub_entry_url},
        )
        return VideoLinkResult(
            errors=[f"Failed to fetch sub-entry page {sub_entry_url}: {e.message}"]
        )
    return parse_video_link(document, driver, log)
