"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..config.config import Config
from ..fetcher.awards import AwardFetcher
from ..fetcher.base import UpstreamError
from ..joiners.datasets import DatasetStore
from ..reports.validation import validation_message
from .routes import router

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def _reload_datasets(store: DatasetStore) -> None:
    datasets = store.reload()
    logger.info("datasets_reloaded %s", " ".join(f"{k}={v}" for k, v in datasets.counts().items()))


def build_scheduler(config: Config, store: DatasetStore) -> Optional[AsyncIOScheduler]:
    """Periodic dataset reload, or None when reloading is switched off."""
    if config.dataset_reload_minutes <= 0:
        return None
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        _reload_datasets,
        trigger=IntervalTrigger(minutes=config.dataset_reload_minutes),
        args=[store],
        id="reload_datasets",
        name="Reload auxiliary datasets",
        replace_existing=True,
        max_instances=1,
    )
    return scheduler


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(
    config: Config,
    store: Optional[DatasetStore] = None,
    fetcher: Optional[AwardFetcher] = None,
) -> FastAPI:
    """Build the app. The dataset store loads from ``config.data_dir`` unless one is given."""
    store = store or DatasetStore(config.data_dir)
    fetcher = fetcher or AwardFetcher.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = build_scheduler(config, store)
        if scheduler is not None:
            scheduler.start()
            logger.info("dataset_reload_scheduled interval_minutes=%d", config.dataset_reload_minutes)
        yield
        if scheduler is not None:
            scheduler.shutdown()

    app = FastAPI(
        title="Market Pipeline API",
        description="Federal buyer discovery and market research reports",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store
    app.state.fetcher = fetcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        message = validation_message(exc.errors())
        logger.info("request_invalid path=%s error=%s", request.url.path, message)
        return _error(400, message)

    @app.exception_handler(ValidationError)
    async def model_validation_handler(request: Request, exc: ValidationError):
        message = validation_message(exc.errors())
        logger.info("request_invalid path=%s error=%s", request.url.path, message)
        return _error(400, message)

    @app.exception_handler(UpstreamError)
    async def upstream_handler(request: Request, exc: UpstreamError):
        logger.error("upstream_unavailable path=%s attempts=%d error=%s", request.url.path, exc.attempts, exc)
        return _error(502, str(exc))

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error path=%s", request.url.path)
        return _error(500, "Internal server error")

    app.include_router(router)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": VERSION,
            "datasets": app.state.store.current.counts(),
        }

    return app
