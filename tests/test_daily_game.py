import asyncio
from datetime import date, datetime, timezone

import pytest

from flagle.domain.errors import LoadError, SessionInitError
from flagle.domain.game_session import MAX_GUESSES, RejectionReason, SessionSnapshot, SessionStatus
from flagle.domain.pool import FlagPool, PoolEntry
from flagle.services.clock import FixedClock
from flagle.services.daily_game import DailyGame, load_daily_target
from flagle.services.snapshot_store import DatabaseSnapshotStore, MemorySnapshotStore, SessionKey
from tests.helpers import WHITE, FakeLoader, solid_buffer

SEED = "test-seed"


async def start(pool, loader, store, clock, player_id="p1") -> DailyGame:
    return await DailyGame.start(pool, loader, store, clock, player_id, seed_string=SEED)


class TestStart:
    async def test_picks_daily_target(self, pool, loader, day0_clock, day1_clock):
        store = MemorySnapshotStore()
        game0 = await start(pool, loader, store, day0_clock)
        game1 = await start(pool, loader, store, day1_clock)
        assert game0.session.target_identifier == "AA"
        assert game1.session.target_identifier == "BB"
        assert game0.key == SessionKey("p1", day0_clock.now().date())

    async def test_target_load_failure_is_init_error(self, pool, buffers, day0_clock):
        del buffers["AA"]
        with pytest.raises(SessionInitError):
            await start(pool, FakeLoader(buffers), MemorySnapshotStore(), day0_clock)

    async def test_restores_in_progress_session(self, pool, loader, day1_clock):
        store = MemorySnapshotStore()
        key = SessionKey("p1", day1_clock.now().date())
        await store.set(key, SessionSnapshot(guesses=["AA"], solved=False))

        game = await start(pool, loader, store, day1_clock)

        assert game.session.status == SessionStatus.in_progress
        assert game.session.guessed_identifiers == ["AA"]
        # AA is solid red, BB has a red left half
        assert game.session.guesses[0].reveal_percentage == 50.0

    async def test_restores_solved_session(self, pool, loader, day1_clock):
        store = MemorySnapshotStore()
        key = SessionKey("p1", day1_clock.now().date())
        await store.set(key, SessionSnapshot(guesses=["CC", "BB"], solved=True))

        game = await start(pool, loader, store, day1_clock)

        assert game.session.status == SessionStatus.solved
        assert game.session.engine.reveal_percentage == 100.0

    async def test_snapshot_from_another_day_ignored(self, pool, loader, day0_clock, day1_clock):
        store = MemorySnapshotStore()
        await store.set(SessionKey("p1", day0_clock.now().date()), SessionSnapshot(guesses=["CC"]))
        game = await start(pool, loader, store, day1_clock)
        assert game.session.guesses == []

    async def test_corrupt_snapshot_starts_fresh(self, pool, loader, day0_clock):
        store = MemorySnapshotStore()
        store.payloads[SessionKey("p1", day0_clock.now().date())] = "{{{"
        game = await start(pool, loader, store, day0_clock)
        assert game.session.guesses == []
        assert game.session.status == SessionStatus.in_progress

    async def test_failed_snapshot_read_refuses_to_start(
        self, pool, loader, day0_clock, session_factory, lock_database, monkeypatch
    ):
        store = DatabaseSnapshotStore(session_factory)
        key = SessionKey("p1", day0_clock.now().date())
        await store.set(key, SessionSnapshot(guesses=["BB", "CC"]))

        lock_database()
        with pytest.raises(SessionInitError):
            await start(pool, loader, store, day0_clock)

        monkeypatch.undo()
        game = await start(pool, loader, store, day0_clock)
        assert game.session.guessed_identifiers == ["BB", "CC"]
        assert game.session.remaining_guesses == MAX_GUESSES - 2

    async def test_restores_exhausted_session(self, day0_clock):
        entries = [PoolEntry(identifier=f"F{i}", display_name=f"Flag {i}") for i in range(8)]
        pool = FlagPool(entries)
        loader = FakeLoader({entry.identifier: solid_buffer(WHITE) for entry in entries})
        target = (await start(pool, loader, MemorySnapshotStore(), day0_clock)).session.target_identifier
        misses = [i for i in pool.identifiers if i != target][:MAX_GUESSES]
        store = MemorySnapshotStore()
        await store.set(SessionKey("p1", day0_clock.now().date()), SessionSnapshot(guesses=misses))

        game = await start(pool, loader, store, day0_clock)

        assert game.session.status == SessionStatus.exhausted
        assert game.session.guessed_identifiers == misses
        assert game.session.engine.reveal_percentage == 100.0
        assert game.session.end_event().won is False
        assert (await game.submit_guess(target)).reason == RejectionReason.game_over

    async def test_unknown_stored_guess_skipped(self, pool, loader, day0_clock):
        store = MemorySnapshotStore()
        key = SessionKey("p1", day0_clock.now().date())
        await store.set(key, SessionSnapshot(guesses=["XX", "CC"]))
        game = await start(pool, loader, store, day0_clock)
        assert game.session.guessed_identifiers == ["CC"]


class TestDailyTarget:
    async def test_load_daily_target(self, pool, loader, day1_clock):
        target = await load_daily_target(pool, loader, day1_clock, SEED)
        assert target.session_date == date(2025, 1, 2)
        assert target.identifier == "BB"
        assert target.buffer is loader.buffers["BB"]

    async def test_given_target_is_not_reloaded(self, pool, loader, day0_clock):
        target = await load_daily_target(pool, loader, day0_clock, SEED)
        loader.calls.clear()

        game = await DailyGame.start(
            pool, loader, MemorySnapshotStore(), day0_clock, "p1", seed_string=SEED, target=target
        )

        assert loader.calls == []
        assert game.session.engine.target is target.buffer

    async def test_target_from_another_day_is_reloaded(self, pool, loader, day0_clock, day1_clock):
        yesterday = await load_daily_target(pool, loader, day0_clock, SEED)
        game = await DailyGame.start(
            pool, loader, MemorySnapshotStore(), day1_clock, "p1", seed_string=SEED, target=yesterday
        )
        assert game.session.target_identifier == "BB"
        assert game.key.session_date == date(2025, 1, 2)


class TestSubmitGuess:
    async def test_accepted_guess_is_persisted(self, pool, loader, day0_clock):
        store = MemorySnapshotStore()
        game = await start(pool, loader, store, day0_clock)

        outcome = await game.submit_guess("BB")

        assert outcome.accepted
        assert outcome.record.identifier == "BB"
        assert outcome.record.reveal_percentage == 50.0
        snapshot = await store.get(game.key)
        assert snapshot.guesses == ["BB"]
        assert snapshot.solved is False

    async def test_display_name_resolves(self, pool, loader, day0_clock):
        game = await start(pool, loader, MemorySnapshotStore(), day0_clock)
        outcome = await game.submit_guess("  gamma ")
        assert outcome.accepted
        assert outcome.record.identifier == "CC"

    async def test_winning_guess_persists_solved(self, pool, loader, day0_clock):
        store = MemorySnapshotStore()
        game = await start(pool, loader, store, day0_clock)
        outcome = await game.submit_guess("AA")
        assert outcome.accepted
        assert game.session.status == SessionStatus.solved
        assert (await store.get(game.key)).solved is True

    async def test_rejections(self, pool, loader, day0_clock):
        store = MemorySnapshotStore()
        game = await start(pool, loader, store, day0_clock)
        await game.submit_guess("BB")
        loads = len(loader.calls)

        unknown = await game.submit_guess("Atlantis")
        duplicate = await game.submit_guess("Beta")

        assert unknown.reason == RejectionReason.unknown_identifier
        assert duplicate.reason == RejectionReason.duplicate
        assert not unknown.accepted and not duplicate.accepted
        assert len(loader.calls) == loads
        assert (await store.get(game.key)).guesses == ["BB"]

    async def test_game_over_rejection(self, pool, loader, day0_clock):
        game = await start(pool, loader, MemorySnapshotStore(), day0_clock)
        await game.submit_guess("AA")
        assert (await game.submit_guess("BB")).reason == RejectionReason.game_over
        assert (await game.submit_guess("Nowhere")).reason == RejectionReason.game_over

    async def test_load_failure_leaves_state_untouched(self, pool, buffers, day0_clock):
        loader = FakeLoader(buffers)
        store = MemorySnapshotStore()
        game = await start(pool, loader, store, day0_clock)
        del loader.buffers["CC"]

        with pytest.raises(LoadError):
            await game.submit_guess("CC")

        assert game.session.guesses == []
        assert game.session.status == SessionStatus.in_progress
        assert await store.get(game.key) is None

        loader.buffers["CC"] = buffers["CC"]
        assert (await game.submit_guess("CC")).accepted

    async def test_concurrent_submission_rejected_as_busy(self, pool, loader, day0_clock):
        game = await start(pool, loader, MemorySnapshotStore(), day0_clock)
        loader.gate = asyncio.Event()

        first = asyncio.create_task(game.submit_guess("BB"))
        while "BB" not in loader.calls:
            await asyncio.sleep(0)
        second = await game.submit_guess("CC")
        loader.gate.set()
        first_outcome = await first

        assert second.reason == RejectionReason.busy
        assert first_outcome.accepted
        assert game.session.guessed_identifiers == ["BB"]

    async def test_six_misses_exhaust(self, day0_clock):
        entries = [PoolEntry(identifier=f"F{i}", display_name=f"Flag {i}") for i in range(8)]
        pool = FlagPool(entries)
        loader = FakeLoader({entry.identifier: solid_buffer(WHITE) for entry in entries})
        game = await start(pool, loader, MemorySnapshotStore(), day0_clock)
        misses = [i for i in pool.identifiers if i != game.session.target_identifier]

        for identifier in misses[:MAX_GUESSES]:
            assert (await game.submit_guess(identifier)).accepted

        assert game.session.status == SessionStatus.exhausted
        assert (await game.submit_guess(misses[MAX_GUESSES])).reason == RejectionReason.game_over
        assert game.session.end_event().won is False


class TestIsCurrent:
    async def test_day_rollover(self, pool, loader, day0_clock):
        game = await start(pool, loader, MemorySnapshotStore(), day0_clock)
        assert game.is_current(datetime(2025, 1, 1, 23, 59, tzinfo=timezone.utc))
        assert not game.is_current(datetime(2025, 1, 2, 0, 0, tzinfo=timezone.utc))


class TestClock:
    def test_fixed_clock(self):
        instant = datetime(2025, 4, 5, 6, 7, tzinfo=timezone.utc)
        clock = FixedClock(instant, tz=timezone.utc)
        assert clock.now() == instant
        assert clock.tz is timezone.utc
