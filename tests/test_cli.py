"""Tests for the anidock command line interface."""

import json

import pytest
from click.testing import CliRunner

from anidock.cli import cli
from anidock.drivers import create_example_driver, dump_driver


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def driver_file(tmp_path, server_url):
    """The example driver pointed at the mock catalog server."""
    driver = create_example_driver()
    driver.config.base_url = f"{server_url}/catalog"
    path = tmp_path / "critters.json"
    path.write_text(dump_driver(driver), encoding="utf-8")
    return str(path)


@pytest.fixture
def offline_driver_file(tmp_path):
    """The example driver as-is, for commands that do not fetch."""
    path = tmp_path / "example.json"
    path.write_text(dump_driver(create_example_driver()), encoding="utf-8")
    return str(path)


class TestOfflineCommands:
    """Commands that never touch the network."""

    def test_example_prints_driver_json(self, runner):
        """example shall print a loadable driver document."""
        result = runner.invoke(cli, ["example"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["config"]["selectors"]["entryList"] == ".anime-card"

    def test_inspect(self, runner, offline_driver_file):
        """inspect shall list every selector role."""
        result = runner.invoke(cli, ["inspect", offline_driver_file])

        assert result.exit_code == 0
        assert "Driver: Example Anime Site" in result.stdout
        assert "Selectors (10/12):" in result.stdout
        assert "  entryList: .anime-card" in result.stdout
        assert "  externalLinkSelector: -" in result.stdout
        assert "  nextButton: .next-page" in result.stdout

    def test_bad_driver_file_is_a_usage_error(self, runner, tmp_path):
        """An invalid driver file shall exit with a usage error."""
        path = tmp_path / "bad.json"
        path.write_text('{"id": "x", "config": {"baseUrl": "relative/path"}}')

        result = runner.invoke(cli, ["inspect", str(path)])

        assert result.exit_code == 2
        assert "absolute" in result.output

    def test_missing_driver_file(self, runner, tmp_path):
        """A driver path that does not exist shall be rejected by click."""
        result = runner.invoke(cli, ["inspect", str(tmp_path / "nope.json")])

        assert result.exit_code == 2


class TestCrawlCommand:
    """Tests for anidock crawl against the mock catalog."""

    def test_crawl_prints_entries(self, runner, driver_file, server_url):
        """crawl shall default to the driver's base URL and print JSON."""
        result = runner.invoke(cli, ["crawl", driver_file])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["errors"] == []
        assert [entry["title"] for entry in data["entries"]] == [
            "Beetle Brigade",
            "Moth to a Flame",
            "Silk Road",
        ]
        assert data["entries"][0]["sourceUrl"] == f"{server_url}/anime/beetle-brigade"

    def test_crawl_with_sub_entries_to_jsonl(self, runner, driver_file, tmp_path):
        """--sub-entries --output shall write indexed entries as JSONL."""
        output = tmp_path / "catalog.jsonl"

        result = runner.invoke(
            cli,
            [
                "crawl",
                driver_file,
                "--sub-entries",
                "--workers",
                "2",
                "--output",
                str(output),
            ],
        )

        assert result.exit_code == 0
        summary = json.loads(result.stdout)
        assert summary["entries"] == 3
        # The show without episodes has an empty episode list on its page.
        assert len(summary["errors"]) == 1
        assert summary["errors"][0].startswith("Silk Road: ")

        lines = [json.loads(line) for line in output.read_text().splitlines()]
        episodes = {line["title"]: line["subEntries"] for line in lines}
        assert [ep["number"] for ep in episodes["Beetle Brigade"]] == [1, 2, 3]
        assert episodes["Beetle Brigade"][0]["title"] == "The Heap Awakens"
        assert len(episodes["Moth to a Flame"]) == 2
        assert episodes["Silk Road"] == []

    def test_crawl_without_entries_exits_1(self, runner, driver_file, server_url):
        """A crawl that yields nothing but errors shall exit with 1."""
        result = runner.invoke(
            cli, ["crawl", driver_file, f"{server_url}/server-error"]
        )

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["entries"] == []
        assert data["errors"][0].startswith("Crawl failed: ")

    def test_crawl_rejects_zero_workers(self, runner, driver_file):
        """--workers below 1 shall be a usage error."""
        result = runner.invoke(cli, ["crawl", driver_file, "--workers", "0"])

        assert result.exit_code == 2


class TestOtherFetchingCommands:
    """Tests for sub-entries, validate and video."""

    def test_sub_entries(self, runner, driver_file, server_url):
        """sub-entries shall list an entry's episodes."""
        url = f"{server_url}/anime/moth-to-a-flame"

        result = runner.invoke(cli, ["sub-entries", driver_file, url])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["cached"] is False
        assert [ep["sourceUrl"] for ep in data["subEntries"]] == [
            f"{server_url}/episode/moth-to-a-flame/1",
            f"{server_url}/episode/moth-to-a-flame/2",
        ]

    def test_sub_entries_fetch_failure_exits_1(self, runner, driver_file, server_url):
        """An unknown entry page shall exit with 1."""
        url = f"{server_url}/anime/no-such-show"

        result = runner.invoke(cli, ["sub-entries", driver_file, url])

        assert result.exit_code == 1
        assert len(json.loads(result.stdout)["errors"]) == 1

    def test_validate_full_chain(self, runner, driver_file, server_url):
        """validate shall reach all three pages of the mock site."""
        result = runner.invoke(cli, ["validate", driver_file, f"{server_url}/catalog"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["errors"] == []
        assert data["pages"] == {
            "catalog": f"{server_url}/catalog",
            "entry": f"{server_url}/anime/beetle-brigade",
            "subEntry": f"{server_url}/episode/beetle-brigade/1",
        }
        assert data["counts"]["entryList"] == 3
        assert data["counts"]["subEntryList"] == 3
        assert data["counts"]["videoPlayer"] == 1
        assert "externalLinkSelector" not in data["counts"]

    def test_validate_broken_catalog_exits_1(self, runner, driver_file, server_url):
        """validate shall exit with 1 when the catalog cannot be fetched."""
        result = runner.invoke(
            cli, ["validate", driver_file, f"{server_url}/server-error"]
        )

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["errors"] == [
            f"Failed to fetch catalog page: {server_url}/server-error"
        ]

    def test_video_iframe(self, runner, driver_file, server_url):
        """video shall print the embedded player URL."""
        url = f"{server_url}/episode/beetle-brigade/2"

        result = runner.invoke(cli, ["video", driver_file, url])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["videoUrl"] == "https://player.critters.test/embed/beetle-brigade-2"
        assert data["videoType"] == "iframe"

    def test_video_native(self, runner, driver_file, server_url):
        """video shall find a native <video><source>."""
        url = f"{server_url}/episode/beetle-brigade/3"

        result = runner.invoke(cli, ["video", driver_file, url])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["videoUrl"] == f"{server_url}/media/beetle-brigade-3.mp4"
        assert data["videoType"] == "video"

    def test_video_missing_exits_1(self, runner, driver_file, server_url):
        """video shall exit with 1 when no link can be found."""
        result = runner.invoke(cli, ["video", driver_file, f"{server_url}/catalog"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["videoUrl"] is None
