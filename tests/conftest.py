"""Shared fixtures for anidock tests."""

import asyncio
import threading
from collections.abc import Iterator

import pytest
from aiohttp import web

from anidock.data_types import Driver
from tests.mock_server import SHOWS, create_app
from tests.utils import make_driver


@pytest.fixture
def expected_show_count() -> int:
    """The number of shows listed by the mock catalog."""
    return len(SHOWS)


@pytest.fixture
def site_driver() -> Driver:
    """A driver for the fictional https://site.test catalog pages."""
    return make_driver(
        entry_list=".card",
        entry_title=".title",
        entry_url="a.link",
    )


# -----------------------------------------------------------------------------
# Mock catalog site
# -----------------------------------------------------------------------------


class ThreadedSite:
    """Serves an aiohttp app on 127.0.0.1 from a daemon thread.

    The listening port is picked by the OS (port 0) and read back once the
    site is up, so parallel test runs never collide.

    Example:
        with ThreadedSite(create_app()) as site:
            httpx.get(f"{site.base_url}/catalog")
    """

    host = "127.0.0.1"

    def __init__(self, app: web.Application) -> None:
        self.app = app
        self.port = 0
        self._ready = threading.Event()
        self._loop = asyncio.new_event_loop()
        self._runner = web.AppRunner(app)
        self._worker = threading.Thread(
            target=self._serve, name="mock-catalog-site", daemon=True
        )

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def __enter__(self) -> "ThreadedSite":
        self._worker.start()
        if not self._ready.wait(timeout=5.0):
            raise RuntimeError("Mock catalog site did not come up")
        return self

    def __exit__(self, *exc_info: object) -> None:
        shutdown = asyncio.run_coroutine_threadsafe(
            self._runner.cleanup(), self._loop
        )
        shutdown.result(timeout=5.0)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._worker.join(timeout=2.0)

    def _serve(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_until_complete(self._listen())
        self._ready.set()
        self._loop.run_forever()
        self._loop.close()

    async def _listen(self) -> None:
        await self._runner.setup()
        await web.TCPSite(self._runner, self.host, 0).start()
        _, self.port = self._runner.addresses[0][:2]


@pytest.fixture
def anime_server() -> Iterator[ThreadedSite]:
    """The Critter Cartoon Catalog, served for the duration of one test."""
    with ThreadedSite(create_app()) as site:
        yield site


@pytest.fixture
def server_url(anime_server: ThreadedSite) -> str:
    """Base URL of the mock site, e.g. "http://127.0.0.1:54321"."""
    return anime_server.base_url
