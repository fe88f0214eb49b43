"""AniDock CLI: inspect drivers and run extractions from the terminal.

Usage:
    anidock example                           # Print the reference driver JSON
    anidock inspect driver.json               # Show driver metadata and selectors
    anidock crawl driver.json [URL]           # Crawl a catalog page
    anidock crawl driver.json --sub-entries   # ... and index every entry's episodes
    anidock sub-entries driver.json ENTRY_URL # List one entry's episodes
    anidock validate driver.json CATALOG_URL  # Run the validation probe
    anidock video driver.json EPISODE_URL     # Find an episode's video link

Results are printed as JSON on stdout. Partial failures (a non-empty
errors list) still exit with status 0; see each command for when it exits
with 1.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from anidock.callbacks import log_progress, save_entries_to_jsonl
from anidock.common.exceptions import DriverConfigError
from anidock.common.request_manager import AsyncRequestManager
from anidock.crawler import crawl_with_driver
from anidock.data_types import Driver, FetchHtml, SelectorRole
from anidock.drivers import create_example_driver, dump_driver, load_driver
from anidock.extract.sub_entries import extract_sub_entries, index_sub_entries
from anidock.extract.video import extract_video_link
from anidock.probe import validate_selectors

T = TypeVar("T")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load(driver_file: str) -> Driver:
    try:
        return load_driver(driver_file)
    except DriverConfigError as e:
        raise click.BadParameter(e.message, param_hint="DRIVER_FILE") from e


def _run_with_fetcher(
    timeout: float,
    proxy: str | None,
    work: Callable[[FetchHtml], Awaitable[T]],
) -> T:
    """Run work() inside an event loop with a fresh request manager."""

    async def _go() -> T:
        async with AsyncRequestManager(
            timeout=timeout, fallback_proxy=proxy
        ) as manager:
            return await work(manager)

    return asyncio.run(_go())


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def fetch_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that fetches pages."""
    func = click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")(
        func
    )
    func = click.option(
        "--proxy",
        default=None,
        help="Fallback proxy URL prefix tried once when a direct fetch fails.",
    )(func)
    func = click.option(
        "--timeout",
        type=float,
        default=30.0,
        show_default=True,
        help="Request timeout in seconds.",
    )(func)
    return func


@click.group()
@click.version_option(package_name="anidock")
def cli() -> None:
    """AniDock: driver-driven catalog extraction."""


@cli.command()
def example() -> None:
    """Print the reference example driver as JSON."""
    click.echo(dump_driver(create_example_driver()))


@cli.command()
@click.argument("driver_file", type=click.Path(exists=True, dir_okay=False))
def inspect(driver_file: str) -> None:
    """Show metadata and configured selectors of a driver file."""
    driver = _load(driver_file)

    click.echo(f"Driver: {driver.name or driver.id}")
    click.echo(f"  Id:      {driver.id}")
    click.echo(f"  Domain:  {driver.domain}")
    click.echo(f"  Version: {driver.version}")
    if driver.author:
        click.echo(f"  Author:  {driver.author}")
    click.echo(f"  Base URL: {driver.config.base_url}")
    if driver.config.requires_external_link:
        click.echo("  Requires external link: yes")

    configured = driver.selectors.configured()
    click.echo(f"\nSelectors ({len(configured)}/{len(SelectorRole)}):")
    for role in SelectorRole:
        selector = configured.get(role)
        click.echo(f"  {role.value}: {selector if selector else '-'}")

    pagination = driver.config.pagination
    if pagination is not None:
        click.echo("\nPagination:")
        click.echo(f"  nextButton: {pagination.next_button or '-'}")
        click.echo(f"  pageParam:  {pagination.page_param or '-'}")


@cli.command()
@click.argument("driver_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("url", required=False)
@click.option(
    "--sub-entries",
    "with_sub_entries",
    is_flag=True,
    help="Also extract the sub-entries of every crawled entry.",
)
@click.option(
    "--workers",
    type=int,
    default=4,
    show_default=True,
    help="Concurrent entry pages fetched with --sub-entries.",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write entries to this JSONL file instead of printing them.",
)
@fetch_options
def crawl(
    driver_file: str,
    url: str | None,
    with_sub_entries: bool,
    workers: int,
    output: str | None,
    timeout: float,
    proxy: str | None,
    verbose: bool,
) -> None:
    """Crawl a catalog page with a driver.

    URL defaults to the driver's base URL. Exits with status 1 only when
    no entries were extracted and errors were reported.

    \b
    Examples:
        anidock crawl drivers/site.json
        anidock crawl drivers/site.json https://site.test/catalog?page=2
        anidock crawl drivers/site.json --sub-entries --output catalog.jsonl
    """
    if workers < 1:
        raise click.BadParameter("must be at least 1", param_hint="--workers")
    _configure_logging(verbose)
    driver = _load(driver_file)
    target = url or driver.config.base_url

    async def work(fetch_html: FetchHtml) -> Any:
        result = await crawl_with_driver(
            target, driver, fetch_html, on_progress=log_progress()
        )
        if with_sub_entries and result.entries:
            indexed = await index_sub_entries(
                result.entries, driver, fetch_html, num_workers=workers
            )
            result = result.model_copy(
                update={
                    "entries": indexed.entries,
                    "errors": result.errors + indexed.errors,
                }
            )
        return result

    result = _run_with_fetcher(timeout, proxy, work)

    if output is not None:
        with Path(output).open("w", encoding="utf-8") as f:
            write = save_entries_to_jsonl(f)
            for entry in result.entries:
                write(entry)
        _echo_json(
            {
                "output": output,
                "entries": len(result.entries),
                "errors": result.errors,
            }
        )
    else:
        _echo_json(result.to_json_dict())

    if not result.entries and result.errors:
        sys.exit(1)


@cli.command("sub-entries")
@click.argument("driver_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("entry_url")
@fetch_options
def sub_entries(
    driver_file: str,
    entry_url: str,
    timeout: float,
    proxy: str | None,
    verbose: bool,
) -> None:
    """List the sub-entries (episodes) found on an entry page."""
    _configure_logging(verbose)
    driver = _load(driver_file)

    result = _run_with_fetcher(
        timeout,
        proxy,
        lambda fetch_html: extract_sub_entries(entry_url, driver, [], fetch_html),
    )
    _echo_json(result.to_json_dict())
    if not result.sub_entries and result.errors:
        sys.exit(1)


@cli.command()
@click.argument("driver_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("catalog_url")
@fetch_options
def validate(
    driver_file: str,
    catalog_url: str,
    timeout: float,
    proxy: str | None,
    verbose: bool,
) -> None:
    """Probe a driver's selectors against catalog, entry and episode pages.

    Exits with status 1 when the probe could not reach every stage.
    """
    _configure_logging(verbose)
    driver = _load(driver_file)

    result = _run_with_fetcher(
        timeout,
        proxy,
        lambda fetch_html: validate_selectors(
            catalog_url, driver.selectors, fetch_html
        ),
    )
    _echo_json(result.to_json_dict())

    unmatched = result.unmatched_roles()
    if unmatched:
        click.echo(
            "Matched nothing: " + ", ".join(role.value for role in unmatched),
            err=True,
        )
    if result.errors:
        sys.exit(1)


@cli.command()
@click.argument("driver_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("sub_entry_url")
@fetch_options
def video(
    driver_file: str,
    sub_entry_url: str,
    timeout: float,
    proxy: str | None,
    verbose: bool,
) -> None:
    """Find the video link on a sub-entry (episode) page."""
    _configure_logging(verbose)
    driver = _load(driver_file)

    result = _run_with_fetcher(
        timeout,
        proxy,
        lambda fetch_html: extract_video_link(sub_entry_url, driver, fetch_html),
    )
    _echo_json(result.to_json_dict())
    if result.video_url is None:
        sys.exit(1)


def main() -> None:
    """Entry point for the ``anidock`` console script."""
    cli()
