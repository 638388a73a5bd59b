"""Daily target rules that are independent from HTTP and DB.

Everything here must give the same answer on every machine for the same
calendar day: the seed string hash, the Park-Miller shuffle and the day index
are all fixed algorithms with no external randomness.

Rule of thumb:
- OK: integer math, permutations, date arithmetic on values passed in.
- Not OK: datetime.now(), random, reading files.
"""

import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import List, Sequence, TypeVar

T = TypeVar("T")

LCG_MULTIPLIER = 16807
LCG_MODULUS = 2147483647  # 2**31 - 1

EPOCH = date(2025, 1, 1)
DAY = timedelta(milliseconds=86_400_000)
DEFAULT_SEED_STRING = "flagle-shuffle-seed-v2"


class LehmerRandom:
    """Park-Miller minimal standard generator.

    Produces the same stream as `s = (s * 16807) % (2**31 - 1)` seeded with the
    raw seed value, so shuffles line up bit-for-bit with the browser version.
    """

    def __init__(self, seed: int):
        if seed % LCG_MODULUS == 0:
            # zero is a fixed point of the recurrence
            raise ValueError(f"seed must not be a multiple of {LCG_MODULUS}, got {seed}")
        self.state = seed

    def next_state(self) -> int:
        self.state = (self.state * LCG_MULTIPLIER) % LCG_MODULUS
        return self.state

    def random(self) -> float:
        """Return the next draw as a fraction in [0, 1)."""
        return (self.next_state() - 1) / (LCG_MODULUS - 1)


def seeded_shuffle(sequence: Sequence[T], seed: int) -> List[T]:
    """Fisher-Yates shuffle driven by LehmerRandom.

    Args:
        sequence (Sequence[T]): Items to permute, left untouched
        seed (int): Positive seed, usually from hash_seed_string

    Returns:
        List[T]: A new list holding a permutation of sequence
    """
    items = list(sequence)
    rng = LehmerRandom(seed)
    for i in range(len(items) - 1, 0, -1):
        j = math.floor(rng.random() * (i + 1))
        items[i], items[j] = items[j], items[i]
    return items


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def hash_seed_string(text: str) -> int:
    """Hash a fixed string to a positive shuffle seed.

    Runs `h = h * 31 + code_unit` over UTF-16 code units, truncating to a signed
    32-bit integer after every step, and returns the absolute value.
    """
    h = 0
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        code_unit = int.from_bytes(data[i:i + 2], "little")
        h = _to_int32(h * 31 + code_unit)
    return abs(h)


def local_date(now: datetime, tz: tzinfo | None = None) -> date:
    """Calendar date of now in tz (system local time when tz is None).

    Naive datetimes are taken as already being local wall-clock time.
    """
    if now.tzinfo is None:
        return now.date()
    if tz is None:
        return now.astimezone().date()
    return now.astimezone(tz).date()


def local_midnight(day: date, tz: tzinfo | None = None) -> datetime:
    """Aware datetime for the start of day in tz."""
    midnight = datetime.combine(day, time())
    if tz is None:
        return midnight.astimezone()
    return midnight.replace(tzinfo=tz)


def day_index(now: datetime, epoch: date = EPOCH, tz: tzinfo | None = None) -> int:
    """Number of whole days between the epoch and the local date of now.

    Both ends are local midnights and the real elapsed time between them is
    floor-divided by 86,400,000 ms. Across a DST change that elapsed time is an
    hour short or long of a whole multiple, exactly as in the browser game.

    Args:
        now (datetime): Current instant
        epoch (date): First game day
        tz (tzinfo | None): Zone that defines "local"; system local time if None

    Returns:
        int: Day offset, negative before the epoch
    """
    today = local_date(now, tz)
    elapsed = (
        local_midnight(today, tz).astimezone(timezone.utc)
        - local_midnight(epoch, tz).astimezone(timezone.utc)
    )
    return elapsed // DAY


def pick_target(
    pool_identifiers: Sequence[str],
    seed_string: str,
    now: datetime,
    epoch: date = EPOCH,
    tz: tzinfo | None = None,
) -> str:
    """Pick today's target identifier from the ordered pool.

    Changing the size or order of the pool changes every later assignment.
    """
    if not pool_identifiers:
        raise ValueError("pool must contain at least one identifier")
    shuffled = seeded_shuffle(pool_identifiers, hash_seed_string(seed_string))
    idx = day_index(now, epoch, tz) % len(shuffled)
    return shuffled[idx]


def time_until_next_day(now: datetime, tz: tzinfo | None = None) -> timedelta:
    """Time left until the next local midnight, when a new target is picked."""
    tomorrow = local_date(now, tz) + timedelta(days=1)
    if now.tzinfo is None:
        # same wall-clock reading as local_date
        now = now.astimezone() if tz is None else now.replace(tzinfo=tz)
    return local_midnight(tomorrow, tz).astimezone(timezone.utc) - now.astimezone(timezone.utc)


def format_countdown(remaining: timedelta) -> str:
    """Render a countdown as HH:MM:SS, clamped at zero."""
    total = max(int(remaining.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
