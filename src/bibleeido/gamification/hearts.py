"""Heart economy: a bounded life pool that regenerates over time.

The stored count is only valid as of ``updated_at``. Every read recomputes the
hearts that are actually available now, and every write rebases the count and
restarts the regeneration timer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from bibleeido.errors import require_non_negative

MAX_HEARTS = 5
REGEN_INTERVAL = timedelta(minutes=30)
HEART_COST = 20


@dataclass(frozen=True)
class HeartState:
    count: int
    updated_at: datetime


def actual_hearts(
    state: HeartState,
    now: datetime,
    max_hearts: int = MAX_HEARTS,
    regen_interval: timedelta = REGEN_INTERVAL,
) -> int:
    """Hearts available at ``now`` after applying regeneration."""
    if state.count >= max_hearts:
        return max_hearts

    elapsed = now - state.updated_at
    # A clock that moved backwards regenerates nothing
    regenerated = max(0, elapsed // regen_interval)
    return max(0, min(max_hearts, state.count + regenerated))


def lose_heart(
    state: HeartState,
    now: datetime,
    max_hearts: int = MAX_HEARTS,
    regen_interval: timedelta = REGEN_INTERVAL,
) -> tuple[HeartState, bool]:
    """Spend one heart for a wrong answer.

    Returns the unchanged state and False when no heart is left; the driver
    treats that as "out of lives" and ends the session.
    """
    actual = actual_hearts(state, now, max_hearts, regen_interval)
    if actual <= 0:
        return state, False
    return HeartState(count=actual - 1, updated_at=now), True


def buy_heart(
    state: HeartState,
    currency: int,
    now: datetime,
    cost: int = HEART_COST,
    max_hearts: int = MAX_HEARTS,
    regen_interval: timedelta = REGEN_INTERVAL,
) -> tuple[HeartState, int, bool]:
    """Trade ``cost`` currency for one heart.

    Fails without changes when the balance is short or the pool is full.
    """
    require_non_negative("cost", cost)
    require_non_negative("currency", currency)

    actual = actual_hearts(state, now, max_hearts, regen_interval)
    if currency < cost or actual >= max_hearts:
        return state, currency, False
    return HeartState(count=actual + 1, updated_at=now), currency - cost, True


def time_to_next_heart(
    state: HeartState,
    now: datetime,
    max_hearts: int = MAX_HEARTS,
    regen_interval: timedelta = REGEN_INTERVAL,
) -> int | None:
    """Seconds until the next regeneration tick, or None when already full."""
    if actual_hearts(state, now, max_hearts, regen_interval) >= max_hearts:
        return None

    elapsed = max(timedelta(0), now - state.updated_at)
    remaining = regen_interval - (elapsed % regen_interval)
    return math.ceil(remaining.total_seconds())
