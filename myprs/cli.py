"""
myprs CLI - print the status-bar report of your pull requests.

Intended to be run by xbar/SwiftBar on a schedule; each invocation is one
polling cycle.
"""

from __future__ import annotations

import logging
import sys
from functools import partial

import click
from dotenv import load_dotenv

# Load .env file (may set MYPRS_CONFIG)
load_dotenv()

from . import __version__
from .config import MyPrsConfig
from .github import GitHubClient, RequestTimeoutError, fetch_snapshot
from .render import render_error, render_report
from .runner import run_once
from .store import SnapshotStore


@click.command()
@click.option("--config", "config_path", default=None, help="Path to the config file")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging on stderr")
@click.version_option(version=__version__)
def main(config_path: str | None, verbose: bool):
    """Show your open and recently closed GitHub pull requests."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = MyPrsConfig.load(config_path)
    client = GitHubClient(token=config.token)
    store = SnapshotStore(config.snapshot_path)

    fetch = partial(
        fetch_snapshot,
        client,
        config.username,
        org=config.org,
        repo=config.repo,
        max_seconds_ago=config.max_seconds_ago,
        recently_closed_seconds=config.recently_closed_seconds,
        timeout=config.timeout,
    )

    try:
        groups, alerts = run_once(fetch, store)
    except RequestTimeoutError:
        click.echo(render_error("timed out", is_tty=sys.stdout.isatty()))
        return

    for line in render_report(groups, alerts):
        click.echo(line)


if __name__ == "__main__":
    main()
