from datetime import timedelta
import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from flagle.create_sqlite_engine import engine
from flagle.crud import CreateData
from flagle.db import Session
from flagle.domain.daily_target import local_date
from flagle.domain.errors import LoadError
from flagle.load_config import (
    data_dir,
    flags_dir,
    game_timezone,
    log_level,
    max_games,
    seed_string,
    snapshot_retention_days,
)
from flagle.manager import GameRegistry
from flagle.routers import game
from flagle.services.asset_loader import FlagImageLoader, load_palette, load_pool
from flagle.services.clock import SystemClock
from flagle.services.snapshot_store import DatabaseSnapshotStore

logging.basicConfig(level=log_level)

scheduler = AsyncIOScheduler()


async def delete_expired_snapshots(store: DatabaseSnapshotStore, clock: SystemClock) -> None:
    today = local_date(clock.now(), clock.tz)
    await store.delete_expired(today - timedelta(days=snapshot_retention_days))


@asynccontextmanager
async def lifespan(app):
    """Load the pool and palette, and set up the game registry.
    This function is called to start the server.
    A missing pool is fatal: nothing can be played without it.
    """
    await CreateData.create_table(engine)

    pool = load_pool(data_dir / "countries.json")
    try:
        palette = load_palette(data_dir / "palette.json")
    except LoadError as e:
        logging.warning(f"Palette unavailable: {e}")
        palette = []
    clock = SystemClock(game_timezone)
    store = DatabaseSnapshotStore(Session)
    registry = GameRegistry(
        pool,
        FlagImageLoader(flags_dir),
        store,
        clock,
        seed_string=seed_string,
        max_games=max_games,
    )
    app.state.registry = registry
    app.state.palette = palette

    # If snapshots are older than the retention period, delete them
    scheduler.add_job(
        delete_expired_snapshots,
        "interval",
        hours=24,
        args=[store, clock],
    )
    scheduler.add_job(registry.cleanup_stale, "interval", hours=24)
    scheduler.start()
    try:
        yield
    finally:
        scheduler.shutdown()
        await engine.dispose()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)
app.include_router(game.game_router)
