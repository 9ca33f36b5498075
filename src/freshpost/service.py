# src/freshpost/service.py
"""
One scrape run, start to finish.

    config -> search URL -> fetch -> extract -> today only -> new only -> save -> summary

Each step either succeeds or aborts the whole run with a PipelineError that
names the step. Nothing is written to the state/snapshot files until every
step before the save has succeeded, and the two files are written together.

Both the scheduler and the API call `run_scrape_once`; runs are serialized by a
process-wide lock so two runs never read-modify-write the seen set at once.
"""
from __future__ import annotations

import datetime as dt
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Sequence

from freshpost.clients.linkedin import build_search_url, fetch_jobs_page
from freshpost.errors import FreshPostError, PipelineError, Stage
from freshpost.io import storage
from freshpost.io.config import load_config_or_default
from freshpost.io.state import load_state
from freshpost.models import JobsSnapshot, ScrapeSummary
from freshpost.pipeline.extract import Extractor, select_extractor
from freshpost.pipeline.filter import filter_today_only

logger = logging.getLogger(__name__)

FetchFn = Callable[[str, Optional[str]], str]
Clock = Callable[[], dt.datetime]

_RUN_LOCK = threading.Lock()


def now_local() -> dt.datetime:
    return dt.datetime.now().astimezone()


class LastRun:
    """
    Completion time of the last successful run, shared by the scheduler and the API.
    Reads and writes go through one lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._at: Optional[dt.datetime] = None

    def record(self, at: dt.datetime) -> None:
        with self._lock:
            if self._at is None or at > self._at:
                self._at = at

    def get(self) -> Optional[dt.datetime]:
        with self._lock:
            return self._at


@contextmanager
def _stage(stage: Stage) -> Iterator[None]:
    try:
        yield
    except PipelineError:
        raise
    except (FreshPostError, OSError, ValueError) as e:
        logger.error("Scrape aborted at %s: %s", stage.value, e)
        raise PipelineError(stage, e) from e


def run_scrape_once(
    paths: storage.Paths,
    *,
    fetch: Optional[FetchFn] = None,
    clock: Clock = now_local,
    extractors: Optional[Sequence[Extractor]] = None,
    last_run: Optional[LastRun] = None,
) -> ScrapeSummary:
    """
    Run the pipeline once and return its summary.

    - fetch: (url, cookie_header) -> page text; defaults to the real HTTP client.
    - clock: "now"; today's date is taken from it once at the start of the run.
    - last_run: updated with the completion time when the run succeeds.
    """
    with _RUN_LOCK:
        summary = _run(paths, fetch or fetch_jobs_page, clock, extractors)
    if last_run is not None:
        last_run.record(summary.updated_at)
    return summary


def _run(
    paths: storage.Paths,
    fetch: FetchFn,
    clock: Clock,
    extractors: Optional[Sequence[Extractor]],
) -> ScrapeSummary:
    today = clock().date()

    with _stage(Stage.CONFIG_LOADED):
        config = load_config_or_default(paths.config)

    with _stage(Stage.QUERY_BUILT):
        query = config.search.to_query()
        search_url = build_search_url(query)
    logger.info("Search URL: %s", search_url)

    with _stage(Stage.FETCHED):
        cookie_header = storage.load_cookie_header(paths)
        body = fetch(search_url, cookie_header)
    storage.write_debug_html(paths, body)

    with _stage(Stage.EXTRACTED):
        extractor = select_extractor(body, extractors)
        all_jobs = extractor.extract(body, keywords=query.keywords, today=today)
    logger.info("%s extractor produced %d jobs", extractor.name, len(all_jobs))

    with _stage(Stage.FILTERED):
        today_jobs = filter_today_only(all_jobs, today=today)

    with _stage(Stage.DEDUP_RESOLVED):
        seen = load_state(paths.state)
        new_jobs = seen.filter_new(today_jobs)
        seen.mark_seen(new_jobs)

    updated_at = clock()
    snapshot = JobsSnapshot(updated_at=updated_at, jobs=today_jobs, new_jobs=new_jobs)

    with _stage(Stage.PERSISTED):
        storage.commit_run(paths, snapshot, seen)

    with _stage(Stage.SUMMARIZED):
        summary = ScrapeSummary(
            total_jobs=len(all_jobs),
            today_jobs=len(today_jobs),
            new_jobs=len(new_jobs),
            search_url=search_url,
            updated_at=updated_at,
            strategy=extractor.name,
        )

    logger.info(
        "Scrape done: total=%d, today=%d, new=%d (seen set now %d)",
        summary.total_jobs, summary.today_jobs, summary.new_jobs, seen.seen_count(),
    )
    return summary
