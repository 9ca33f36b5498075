# src/freshpost/api.py
"""
HTTP control surface (JSON) plus the static web page.

    GET  /api/config   current config (defaults if no file yet)
    POST /api/config   replace config
    GET  /api/jobs     latest snapshot
    POST /api/run      run the pipeline now, return its summary
    GET  /api/status   last successful run, size of the seen set

Any pipeline/storage failure comes back as a 500 with the error text.
"""
from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from freshpost.errors import FreshPostError
from freshpost.io import storage
from freshpost.io.config import DEFAULT_INTERVAL_HOURS, AppConfig, load_config_or_default, save_config
from freshpost.io.state import load_state
from freshpost.scheduler import run_scheduler
from freshpost.service import LastRun, run_scrape_once

logger = logging.getLogger(__name__)


class SearchConfigBody(BaseModel):
    keywords: str
    location: str
    remote: bool = False
    salary_min: Optional[int] = None


class ScheduleConfigBody(BaseModel):
    interval_hours: int = Field(DEFAULT_INTERVAL_HOURS, ge=1)


class ConfigBody(BaseModel):
    search: SearchConfigBody
    schedule: ScheduleConfigBody = Field(default_factory=ScheduleConfigBody)


def _internal_error(e: Exception) -> HTTPException:
    logger.error("Request failed: %s", e)
    return HTTPException(status_code=500, detail=str(e))


def create_app(
    paths: Optional[storage.Paths] = None,
    *,
    last_run: Optional[LastRun] = None,
    enable_scheduler: Optional[bool] = None,
    web_dir: Optional[Path] = None,
) -> FastAPI:
    paths = paths or storage.Paths.from_env()
    last_run = last_run or LastRun()
    if enable_scheduler is None:
        enable_scheduler = os.getenv("FRESHPOST_DISABLE_SCHEDULER", "").lower() != "true"
    web_dir = web_dir or Path(os.getenv("WEB_DIR", "web"))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        task = None
        if enable_scheduler:
            task = asyncio.create_task(run_scheduler(paths, last_run))
            logger.info("Scheduler task created")
        else:
            logger.info("Scheduler disabled")
        yield
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    app = FastAPI(title="fresh-post", version="0.1.0", lifespan=lifespan)
    app.state.paths = paths
    app.state.last_run = last_run

    @app.get("/api/config")
    def get_config() -> Dict[str, Any]:
        try:
            return load_config_or_default(paths.config).to_dict()
        except FreshPostError as e:
            raise _internal_error(e) from e

    @app.post("/api/config")
    def update_config(body: ConfigBody) -> Dict[str, Any]:
        try:
            config = AppConfig.from_dict(body.model_dump())
            save_config(paths.config, config)
        except FreshPostError as e:
            raise _internal_error(e) from e
        logger.info("Config updated: %s", config.to_dict())
        return config.to_dict()

    @app.get("/api/jobs")
    def get_jobs() -> Dict[str, Any]:
        try:
            return storage.load_latest_jobs(paths).to_dict()
        except FreshPostError as e:
            raise _internal_error(e) from e

    @app.post("/api/run")
    def run_scrape() -> Dict[str, Any]:
        try:
            summary = run_scrape_once(paths, last_run=last_run)
        except FreshPostError as e:
            raise _internal_error(e) from e
        return summary.to_dict()

    @app.get("/api/status")
    def get_status() -> Dict[str, Any]:
        try:
            seen_count = load_state(paths.state).seen_count()
        except FreshPostError as e:
            raise _internal_error(e) from e
        at = last_run.get()
        return {
            "last_run": at.isoformat() if at else None,
            "seen_count": seen_count,
            "scheduler_enabled": enable_scheduler,
        }

    if web_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(web_dir), html=True), name="web")
    else:
        logger.info("No static web dir at %s; serving the API only", web_dir)

    return app
