# src/freshpost/scheduler.py
"""
Background loop: run the pipeline, sleep `schedule.interval_hours`, repeat.

The interval is re-read from config before every sleep, so edits take effect on
the next cycle. A failed run is logged and the loop keeps going.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from freshpost.errors import FreshPostError, PipelineError, TransportError
from freshpost.io.config import DEFAULT_INTERVAL_HOURS, load_config_or_default
from freshpost.io.storage import Paths
from freshpost.models import ScrapeSummary
from freshpost.service import LastRun, run_scrape_once

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Runner = Callable[[Paths, LastRun], ScrapeSummary]


def _is_transport_failure(exc: BaseException) -> bool:
    return isinstance(exc, PipelineError) and isinstance(exc.error, TransportError)


@retry(
    # Connection trouble only: wait 30s, then 60s, up to 5 min; at most 3 tries.
    wait=wait_exponential(multiplier=30, min=30, max=300),
    stop=stop_after_attempt(3),
    retry=retry_if_exception(_is_transport_failure),
    reraise=True,
)
def run_with_retry(paths: Paths, last_run: LastRun) -> ScrapeSummary:
    return run_scrape_once(paths, last_run=last_run)


def interval_hours(paths: Paths) -> int:
    try:
        return load_config_or_default(paths.config).schedule.interval_hours
    except FreshPostError as e:
        logger.warning("[scheduler] could not read interval (%s); using %dh", e, DEFAULT_INTERVAL_HOURS)
        return DEFAULT_INTERVAL_HOURS


async def run_scheduler(
    paths: Paths,
    last_run: LastRun,
    *,
    sleep: Sleep = asyncio.sleep,
    runner: Optional[Runner] = None,
    max_cycles: Optional[int] = None,
) -> None:
    runner = runner or run_with_retry
    cycles = 0
    logger.info("[scheduler] started")

    while max_cycles is None or cycles < max_cycles:
        cycles += 1
        try:
            summary = await asyncio.to_thread(runner, paths, last_run)
            logger.info(
                "[scheduler] ran scrape: total=%d, today=%d, new=%d url=%s at=%s",
                summary.total_jobs,
                summary.today_jobs,
                summary.new_jobs,
                summary.search_url,
                summary.updated_at.isoformat(),
            )
        except FreshPostError as e:
            logger.error("[scheduler] scrape failed: %s", e)
        except Exception as e:
            logger.error("[scheduler] unexpected error: %s", e, exc_info=True)

        sleep_seconds = interval_hours(paths) * 3600
        logger.info("[scheduler] next run in %d seconds", sleep_seconds)
        await sleep(sleep_seconds)

    logger.info("[scheduler] stopped")
