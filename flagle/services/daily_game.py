"""One player's game for one calendar day.

DailyGame wires the pure session to its collaborators: it picks the target,
fetches decoded flag images, restores the persisted snapshot and writes it back
after every accepted guess. Image fetching is the only asynchronous step;
comparison and bitmap updates run one submission at a time.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Protocol

from pydantic import BaseModel

from flagle.domain.daily_target import DEFAULT_SEED_STRING, EPOCH, local_date, pick_target
from flagle.domain.errors import LoadError, SessionInitError, StoreError
from flagle.domain.game_session import GameSession, GuessRecord, RejectionReason
from flagle.domain.pool import FlagPool
from flagle.domain.reveal import PixelBuffer
from flagle.services.clock import Clock
from flagle.services.snapshot_store import SessionKey, SnapshotStore


class PixelLoader(Protocol):
    async def load_async(self, identifier: str) -> PixelBuffer: ...


class GuessOutcome(BaseModel):
    accepted: bool
    reason: RejectionReason | None = None
    record: GuessRecord | None = None


@dataclass(frozen=True)
class DailyTarget:
    """Today's flag; the buffer is read-only and shared by every player's session."""

    session_date: date
    identifier: str
    buffer: PixelBuffer


async def load_daily_target(
    pool: FlagPool,
    loader: PixelLoader,
    clock: Clock,
    seed_string: str = DEFAULT_SEED_STRING,
    epoch: date = EPOCH,
) -> DailyTarget:
    """Pick and decode the target for the current local day

    Raises:
        SessionInitError: The target image could not be loaded
    """
    now: datetime = clock.now()
    identifier = pick_target(pool.identifiers, seed_string, now, epoch, clock.tz)
    try:
        buffer = await loader.load_async(identifier)
    except LoadError as e:
        raise SessionInitError(f"Cannot load today's target: {e}") from e
    return DailyTarget(local_date(now, clock.tz), identifier, buffer)


class DailyGame:
    def __init__(
        self,
        session: GameSession,
        key: SessionKey,
        loader: PixelLoader,
        store: SnapshotStore,
        clock: Clock,
    ):
        self.session = session
        self.key = key
        self.loader = loader
        self.store = store
        self.clock = clock
        self._lock = asyncio.Lock()

    @classmethod
    async def start(
        cls,
        pool: FlagPool,
        loader: PixelLoader,
        store: SnapshotStore,
        clock: Clock,
        player_id: str,
        seed_string: str = DEFAULT_SEED_STRING,
        epoch: date = EPOCH,
        target: DailyTarget | None = None,
    ) -> "DailyGame":
        """Set up today's game for player_id and replay any stored guesses

        Args:
            pool (FlagPool): Ordered pool of flags
            loader (PixelLoader): Fetches decoded flag images
            store (SnapshotStore): Where snapshots are kept between reloads
            clock (Clock): Source of "now", also fixes the local timezone
            player_id (str): To identify the player's snapshot
            seed_string (str): Fixed string the daily permutation is seeded from
            epoch (date): First game day
            target (DailyTarget | None): Already loaded target; reloaded if it is not today's

        Raises:
            SessionInitError: The target (or a stored guess) could not be loaded,
                or the stored snapshot could not be read

        Returns:
            DailyGame: Ready to accept guesses
        """
        session_date = local_date(clock.now(), clock.tz)
        if target is None or target.session_date != session_date:
            target = await load_daily_target(pool, loader, clock, seed_string, epoch)
        logging.info(f"Starting game for {player_id} on {target.session_date}")

        session = GameSession(pool, target.identifier, target.buffer, target.session_date)
        game = cls(session, SessionKey(player_id, target.session_date), loader, store, clock)
        await game.restore()
        return game

    async def restore(self) -> None:
        """Replay the stored guesses in their original order"""
        try:
            snapshot = await self.store.get(self.key)
        except StoreError as e:
            # a failed read is not an empty store
            raise SessionInitError(f"Cannot restore {self.key.storage_key}: {e}") from e
        if snapshot is None:
            return

        for identifier in snapshot.guesses:
            reason = self.session.rejection_reason(identifier)
            if reason is not None:
                logging.warning(f"Skipping stored guess {identifier}: {reason.value}")
                continue
            try:
                guess_buffer = await self.loader.load_async(identifier)
            except LoadError as e:
                raise SessionInitError(f"Cannot replay stored guess: {e}") from e
            self.session.submit_guess(identifier, guess_buffer)

        if snapshot.solved != self.session.solved:
            logging.warning(
                f"Stored solved={snapshot.solved} disagrees with replay for {self.key.storage_key}"
            )
        logging.info(
            f"Restored {len(self.session.guesses)} guesses for {self.key.player_id}, "
            f"status {self.session.status.value}"
        )

    def is_current(self, now: datetime) -> bool:
        return local_date(now, self.clock.tz) == self.session.session_date

    @property
    def busy(self) -> bool:
        """A submission is being processed."""
        return self._lock.locked()

    async def submit_guess(self, text: str) -> GuessOutcome:
        """Resolve, check, load and apply one guess

        Raises:
            LoadError: The guessed flag's image is unavailable; nothing is recorded

        Returns:
            GuessOutcome: accepted with its record, or the rejection reason
        """
        if self.busy:
            return GuessOutcome(accepted=False, reason=RejectionReason.busy)

        async with self._lock:
            identifier = self.session.pool.resolve(text)
            if identifier is None:
                reason = (
                    RejectionReason.game_over
                    if self.session.over
                    else RejectionReason.unknown_identifier
                )
                return GuessOutcome(accepted=False, reason=reason)

            reason = self.session.rejection_reason(identifier)
            if reason is not None:
                return GuessOutcome(accepted=False, reason=reason)

            guess_buffer = await self.loader.load_async(identifier)
            record = self.session.submit_guess(identifier, guess_buffer)

            stored = await self.store.set(self.key, self.session.snapshot())
            if not stored:
                logging.error(f"Snapshot for {self.key.storage_key} was not stored")

            logging.info(
                f"{self.key.player_id} guessed {identifier}: {record.reveal_percentage:.1f}%"
            )
            if self.session.over:
                logging.info(
                    f"Game over for {self.key.player_id}: {self.session.status.value}"
                )
            return GuessOutcome(accepted=True, record=record)
