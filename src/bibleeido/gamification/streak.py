"""Daily streak tracking.

Calendar days are compared in one canonical zone (UTC unless configured
otherwise). The transition itself is pure: the driver resolves "today" once
per session start and passes it in.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from bibleeido.errors import EconomyValidationError


@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: date | None = None

    def __post_init__(self) -> None:
        # Stored rows and guest snapshots may carry the day as an ISO string
        if self.last_activity_date is not None:
            object.__setattr__(self, "last_activity_date", _as_date(self.last_activity_date))


def _as_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise EconomyValidationError(f"Invalid calendar date: {value!r}") from exc


def today_in_zone(now: datetime, tz: str = "UTC") -> date:
    """Calendar day of ``now`` in the canonical streak zone."""
    return now.astimezone(ZoneInfo(tz)).date()


def update_streak(state: StreakState, today: date | str) -> StreakState:
    """Record activity on ``today``.

    Idempotent within a day; continues the streak after yesterday's activity
    and restarts it at 1 after a gap or on first activity.
    """
    day = _as_date(today)
    last = state.last_activity_date

    if last == day:
        return state

    if last is not None and last == day - timedelta(days=1):
        current = state.current_streak + 1
    else:
        current = 1

    return replace(
        state,
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_activity_date=day,
    )


def effective_streak(state: StreakState, today: date | str) -> int:
    """Streak still alive on ``today`` (the stored value lags until the next activity)."""
    day = _as_date(today)
    last = state.last_activity_date
    if last is None or (day - last).days > 1:
        return 0
    return state.current_streak
