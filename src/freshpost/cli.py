# src/freshpost/cli.py
"""
Command-line interface for fresh-post.

This module provides CLI commands to:
- Run one scrape now (fetch -> extract -> today only -> new only -> save)
- Serve the HTTP API with the background scheduler
- Show the latest snapshot or the search URL the config produces
- Debug extraction against the last saved page and check the cookies file
"""

from dotenv import load_dotenv
load_dotenv(override=True)  # automatically looks for a .env file in the project root

import json
import logging
import os
from pathlib import Path
from typing import Optional

import typer

from freshpost.clients.linkedin import build_search_url
from freshpost.errors import FreshPostError
from freshpost.io import storage
from freshpost.io.config import load_config_or_default
from freshpost.pipeline.extract import select_extractor
from freshpost.pipeline.filter import filter_today_only
from freshpost.service import run_scrape_once

logger = logging.getLogger(__name__)

# Typer app instance for CLI commands
app = typer.Typer(help="Posted-today job notifier")


def _paths() -> storage.Paths:
    try:
        return storage.Paths.from_env()
    except FreshPostError as e:
        raise SystemExit(str(e))


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging (every extracted job)"),
):
    """
    Logging goes to stderr; command results are printed as JSON on stdout.
    """
    level_name = "DEBUG" if verbose else os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )


@app.command()
def run():
    """
    Scrape once: fetch the search page, keep today's jobs, report the new ones.
    """
    paths = _paths()
    try:
        summary = run_scrape_once(paths)
    except FreshPostError as e:
        typer.echo(f"Scrape failed: {e}", err=True)
        raise typer.Exit(code=1)

    try:
        snapshot = storage.load_latest_jobs(paths)
    except FreshPostError as e:
        raise SystemExit(str(e))
    typer.echo(json.dumps({
        **summary.to_dict(),
        "new": [j.to_dict() for j in snapshot.new_jobs],
    }, indent=2))


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(8080, "--port"),
    no_scheduler: bool = typer.Option(False, "--no-scheduler", help="API only; no background runs"),
):
    """
    Start the HTTP API (and the scheduler, unless --no-scheduler).
    """
    import uvicorn
    from freshpost.api import create_app

    api = create_app(_paths(), enable_scheduler=False if no_scheduler else None)
    typer.echo(f"Server running at http://{host}:{port}")
    uvicorn.run(api, host=host, port=port)


@app.command()
def jobs(
    new_only: bool = typer.Option(False, "--new-only", help="Only jobs that were new in the last run"),
):
    """
    Print the latest snapshot.
    """
    paths = _paths()
    try:
        snapshot = storage.load_latest_jobs(paths)
    except FreshPostError as e:
        raise SystemExit(str(e))

    if new_only:
        typer.echo(json.dumps({
            "updated_at": snapshot.updated_at.isoformat() if snapshot.updated_at else None,
            "new_jobs": [j.to_dict() for j in snapshot.new_jobs],
        }, indent=2))
        return
    typer.echo(json.dumps(snapshot.to_dict(), indent=2))


@app.command()
def search_url():
    """
    Quick check: show the search URL the current config produces.
    """
    paths = _paths()
    try:
        config = load_config_or_default(paths.config)
    except FreshPostError as e:
        raise SystemExit(str(e))
    print(build_search_url(config.search.to_query()))


@app.command()
def parse_debug(
    path: Optional[Path] = typer.Argument(None, help="HTML file (default: the last fetched page)"),
    today: bool = typer.Option(False, "--today", help="Apply the posted-today filter"),
):
    """
    Debug: re-run extraction on a saved page without touching state or the network.

    Useful when the site changes its markup: fetch once, then iterate on selectors.
    """
    paths = _paths()
    source = path or paths.debug_html
    if not source.exists():
        raise SystemExit(f"No saved page at {source}. Run `freshpost run` first.")

    try:
        html = source.read_text(encoding="utf-8")
        config = load_config_or_default(paths.config)
        extractor = select_extractor(html)
        found = extractor.extract(html, keywords=config.search.keywords)
    except (FreshPostError, OSError) as e:
        raise SystemExit(str(e))
    if today:
        found = filter_today_only(found)

    typer.echo(json.dumps({
        "strategy": extractor.name,
        "count": len(found),
        "jobs": [j.to_dict() for j in found],
    }, indent=2))


@app.command()
def cookies_check():
    """
    Debug: confirm the cookies file is picked up (prints names, never values).
    """
    paths = _paths()
    try:
        header = storage.load_cookie_header(paths)
    except FreshPostError as e:
        raise SystemExit(str(e))
    if header is None:
        typer.echo(f"No cookies at {paths.cookies}; fetching as a guest.")
        return
    names = [pair.split("=", 1)[0].strip() for pair in header.split(";")]
    typer.echo(json.dumps({
        "file": str(paths.cookies),
        "count": len(names),
        "names": names,
        "has_li_at": "li_at" in names,
    }, indent=2))


if __name__ == "__main__":
    app()
