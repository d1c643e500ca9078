"""
PriceFeed - Main FastAPI Application
Entry point for the price series continuity and query service
"""

import logging
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import router as prices_router
from config.settings import Settings, settings as default_settings
from pricefeed import PairRegistry, __version__
from pricefeed.backfill import BackfillCoordinator, GapDetector
from pricefeed.collection import (
    CollectionCycle,
    IntervalScheduler,
    PriceCollector,
    TickerPriceSource
)
from pricefeed.exceptions import DataIntegrityError, StoreUnavailable
from pricefeed.fetchers import BaseFetcher, KrakenFetcher, KrakenInterval
from pricefeed.query import RangeQueryEngine
from pricefeed.store import SeriesStore

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def resolve_pairs_file(pairs_file: str) -> Path:
    path = Path(pairs_file)
    if not path.is_absolute() and not path.exists():
        path = BASE_DIR / path
    return path


def create_app(settings: Optional[Settings] = None,
               store: Optional[SeriesStore] = None,
               registry: Optional[PairRegistry] = None,
               fetcher: Optional[BaseFetcher] = None) -> FastAPI:
    """
    Build the application and wire its collaborators.

    Collaborators not passed in are created from settings. Everything is
    stored on ``app.state``; startup only starts the collection scheduler.
    """
    settings = settings or default_settings
    interval = settings.collection_interval_seconds

    if registry is None:
        registry = PairRegistry.from_file(resolve_pairs_file(settings.pairs_file))
    if store is None:
        store = SeriesStore.from_url(
            settings.redis_url,
            socket_timeout=settings.redis_socket_timeout,
            connect_timeout=settings.redis_connect_timeout
        )
    if fetcher is None:
        fetcher = KrakenFetcher(
            base_url=settings.fallback_base_url,
            timeout=settings.fallback_timeout
        )

    coordinator = BackfillCoordinator(
        store,
        fetcher,
        interval,
        max_samples=settings.fallback_max_samples,
        init_interval=KrakenInterval(settings.fallback_init_interval_minutes)
    )
    cycle = CollectionCycle(
        registry,
        GapDetector(store, interval),
        coordinator,
        PriceCollector(store, TickerPriceSource(fetcher), interval)
    )
    scheduler = IntervalScheduler(interval, cycle.run, run_on_start=settings.run_on_startup)

    app = FastAPI(
        title=settings.app_name,
        description="Price series collection, gap backfill and range queries",
        version=__version__,
        debug=settings.debug
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = store
    app.state.registry = registry
    app.state.fetcher = fetcher
    app.state.cycle = cycle
    app.state.scheduler = scheduler
    app.state.query_engine = RangeQueryEngine(store, registry, interval, max_amount=settings.max_datapoints)

    app.include_router(prices_router)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": errors or "invalid request"})

    @app.on_event("startup")
    async def startup_event():
        """Start scheduled collection"""
        if settings.scheduler_enabled:
            scheduler.start()
        logger.info(f"{settings.app_name} started with {len(registry)} pairs, interval {interval}s")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop collection and release connections"""
        await scheduler.stop()
        await fetcher.stop()
        await store.close()
        logger.info(f"{settings.app_name} stopped")

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": __version__,
            "status": "running"
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring"""
        store_ok = await store.ping()
        misaligned = []
        if store_ok:
            for pair in registry:
                try:
                    await store.check_integrity(pair.name)
                except DataIntegrityError as e:
                    logger.error(f"Health check found a misaligned series: {e}")
                    misaligned.append(pair.name)
                except StoreUnavailable:
                    store_ok = False
                    break

        fallback = await fetcher.health_check()
        healthy = store_ok and not misaligned and fallback.get("status") == "ok"
        return {
            "status": "healthy" if healthy else "degraded",
            "app": settings.app_name,
            "version": __version__,
            "store": "reachable" if store_ok else "unreachable",
            "misaligned_pairs": misaligned,
            "fallback": {**fallback, "metrics": fetcher.get_metrics()},
            "scheduler_running": scheduler.is_running
        }

    return app


configure_logging(default_settings.log_level)

app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
        log_level=default_settings.log_level.lower()
    )
