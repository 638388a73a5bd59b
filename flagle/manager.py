import asyncio
import logging
from asyncio import Lock
from collections import OrderedDict
from typing import Dict

from flagle.domain.daily_target import DEFAULT_SEED_STRING, local_date
from flagle.domain.pool import FlagPool
from flagle.services.clock import Clock
from flagle.services.daily_game import DailyGame, DailyTarget, PixelLoader, load_daily_target
from flagle.services.snapshot_store import SnapshotStore

DEFAULT_MAX_GAMES = 1000


class GameRegistry:
    """Holds one independent DailyGame per player.

    Games are kept in least-recently-used order and evicted beyond max_games;
    an evicted player's game is restored from the snapshot store on the next
    request. Today's target image is decoded once and shared by all sessions.
    """

    def __init__(
        self,
        pool: FlagPool,
        loader: PixelLoader,
        store: SnapshotStore,
        clock: Clock,
        seed_string: str = DEFAULT_SEED_STRING,
        max_games: int = DEFAULT_MAX_GAMES,
    ):
        self.pool = pool
        self.loader = loader
        self.store = store
        self.clock = clock
        self.seed_string = seed_string
        self.max_games = max_games
        self.games: OrderedDict[str, DailyGame] = OrderedDict()  # player_id -> today's game
        self.starting: Dict[str, asyncio.Task] = {}  # player_id -> game being started
        self.lock = Lock()  # protects games and starting, never held across I/O
        self.target: DailyTarget | None = None
        self.target_lock = Lock()  # one target load at a time

    async def daily_target(self) -> DailyTarget:
        """Today's target, loaded on first use each day

        Raises:
            SessionInitError: The target image could not be loaded
        """
        async with self.target_lock:
            today = local_date(self.clock.now(), self.clock.tz)
            if self.target is None or self.target.session_date != today:
                self.target = await load_daily_target(
                    self.pool, self.loader, self.clock, self.seed_string
                )
                logging.info(f"Loaded target for {self.target.session_date}")
            return self.target

    async def get_or_start(self, player_id: str) -> DailyGame:
        """Get today's game of the specified player, starting it if needed

        Concurrent calls for the same player share one start; calls for other
        players are not held up by it.

        Args:
            player_id (str): ID to identify the player

        Raises:
            SessionInitError: Today's game could not be set up

        Returns:
            DailyGame: Game for the current calendar day
        """
        async with self.lock:
            game = self.games.get(player_id)
            if game is not None and game.is_current(self.clock.now()):
                self.games.move_to_end(player_id)
                return game
            task = self.starting.get(player_id)
            if task is None:
                task = asyncio.ensure_future(self._start(player_id))
                self.starting[player_id] = task
        return await asyncio.shield(task)

    async def _start(self, player_id: str) -> DailyGame:
        game = None
        try:
            target = await self.daily_target()
            game = await DailyGame.start(
                self.pool,
                self.loader,
                self.store,
                self.clock,
                player_id,
                seed_string=self.seed_string,
                target=target,
            )
            return game
        finally:
            async with self.lock:
                del self.starting[player_id]
                if game is not None:
                    self.games[player_id] = game
                    self.games.move_to_end(player_id)
                    self._evict_idle()

    def _evict_idle(self) -> None:
        """Drop least recently used games beyond max_games; call with lock held"""
        excess = len(self.games) - self.max_games
        if excess <= 0:
            return
        evicted = [pid for pid, game in self.games.items() if not game.busy][:excess]
        for player_id in evicted:
            del self.games[player_id]
        logging.debug(f"Evicted {len(evicted)} idle games")

    async def cleanup_stale(self) -> int:
        """Drop games that belong to a previous calendar day

        Returns:
            int: Number of dropped games
        """
        async with self.lock:
            now = self.clock.now()
            stale = [pid for pid, game in self.games.items() if not game.is_current(now)]
            for player_id in stale:
                del self.games[player_id]
        if stale:
            logging.info(f"Dropped {len(stale)} stale games")
        return len(stale)
