"""Progress store capability and the in-memory (guest) backend.

Scoring logic talks to one ``ProgressStore`` interface; the guest path keeps
progress in memory and the authenticated path persists it through SQL.

Economy changes go through ``update_economy``: the store hands the current
state to a pure function and persists what it returns, holding the user's
economy row for the whole read-compute-write.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Protocol, TypeVar

from bibleeido.gamification.achievements import AchievementRule
from bibleeido.gamification.hearts import MAX_HEARTS, HeartState
from bibleeido.gamification.level_thresholds import ExperienceState
from bibleeido.gamification.shop import Cosmetic, PurchaseResult, Wallet
from bibleeido.gamification.streak import StreakState
from bibleeido.quiz.schemas import ContentItem

T = TypeVar("T")


@dataclass(frozen=True)
class UserEconomyState:
    """Everything the economy reads and writes for one user."""

    user_id: str
    experience: ExperienceState = field(default_factory=ExperienceState)
    wallet: Wallet = field(default_factory=Wallet)
    hearts: HeartState = field(
        default_factory=lambda: HeartState(count=MAX_HEARTS, updated_at=datetime.now(timezone.utc))
    )
    streak: StreakState = field(default_factory=StreakState)
    last_challenge_date: date | None = None

    def evolve(self, **changes: object) -> UserEconomyState:
        return replace(self, **changes)


@dataclass(frozen=True)
class ContentProgress:
    content_id: str
    completed: bool = False
    best_score: int = 0
    attempts: int = 0

    def with_attempt(self, score: int, completed: bool) -> ContentProgress:
        """Completion is sticky and the best score only goes up."""
        return ContentProgress(
            content_id=self.content_id,
            completed=self.completed or completed,
            best_score=max(self.best_score, score),
            attempts=self.attempts + 1,
        )


PurchaseDecision = Callable[[UserEconomyState, set[str]], PurchaseResult]


class ProgressStore(Protocol):
    async def load_economy(self, user_id: str) -> UserEconomyState: ...

    async def update_economy(
        self, user_id: str, apply: Callable[[UserEconomyState], tuple[UserEconomyState, T]]
    ) -> T: ...

    async def get_content(self, content_id: str) -> ContentItem | None: ...

    async def get_content_progress(self, user_id: str, content_id: str) -> ContentProgress: ...

    async def record_attempt(self, user_id: str, content_id: str, score: int, completed: bool) -> ContentProgress: ...

    async def count_completed(self, user_id: str) -> int: ...

    async def list_achievement_rules(self) -> list[AchievementRule]: ...

    async def unlocked_achievement_ids(self, user_id: str) -> set[str]: ...

    async def unlock_achievements(self, user_id: str, achievement_ids: Iterable[str]) -> None: ...

    async def get_cosmetic(self, cosmetic_id: str) -> Cosmetic | None: ...

    async def owned_cosmetic_ids(self, user_id: str) -> set[str]: ...

    async def apply_purchase(self, user_id: str, cosmetic_id: str, decide: PurchaseDecision) -> PurchaseResult:
        """Charge the wallet and grant the cosmetic together, or do neither."""
        ...


class LocalProgressStore:
    """In-memory backend for guests and tests.

    Updates never await between reading and writing, so each one is atomic
    on the event loop.
    """

    def __init__(
        self,
        rules: Iterable[AchievementRule] = (),
        cosmetics: Iterable[Cosmetic] = (),
        contents: Iterable[ContentItem] = (),
    ) -> None:
        self._economy: dict[str, UserEconomyState] = {}
        self._progress: dict[tuple[str, str], ContentProgress] = {}
        self._rules = list(rules)
        self._unlocked: dict[str, set[str]] = {}
        self._cosmetics = {c.id: c for c in cosmetics}
        self._owned: dict[str, set[str]] = {}
        self._contents = {c.id: c for c in contents}

    def _current(self, user_id: str) -> UserEconomyState:
        return self._economy.get(user_id) or UserEconomyState(user_id=user_id)

    async def load_economy(self, user_id: str) -> UserEconomyState:
        return self._current(user_id)

    async def update_economy(
        self, user_id: str, apply: Callable[[UserEconomyState], tuple[UserEconomyState, T]]
    ) -> T:
        updated, result = apply(self._current(user_id))
        self._economy[user_id] = updated
        return result

    async def get_content(self, content_id: str) -> ContentItem | None:
        return self._contents.get(content_id)

    async def get_content_progress(self, user_id: str, content_id: str) -> ContentProgress:
        return self._progress.get((user_id, content_id)) or ContentProgress(content_id=content_id)

    async def record_attempt(self, user_id: str, content_id: str, score: int, completed: bool) -> ContentProgress:
        current = self._progress.get((user_id, content_id)) or ContentProgress(content_id=content_id)
        updated = current.with_attempt(score, completed)
        self._progress[(user_id, content_id)] = updated
        return updated

    async def count_completed(self, user_id: str) -> int:
        return sum(1 for (uid, _), p in self._progress.items() if uid == user_id and p.completed)

    async def list_achievement_rules(self) -> list[AchievementRule]:
        return list(self._rules)

    async def unlocked_achievement_ids(self, user_id: str) -> set[str]:
        return set(self._unlocked.get(user_id, set()))

    async def unlock_achievements(self, user_id: str, achievement_ids: Iterable[str]) -> None:
        self._unlocked.setdefault(user_id, set()).update(achievement_ids)

    async def get_cosmetic(self, cosmetic_id: str) -> Cosmetic | None:
        return self._cosmetics.get(cosmetic_id)

    async def owned_cosmetic_ids(self, user_id: str) -> set[str]:
        return set(self._owned.get(user_id, set()))

    async def apply_purchase(self, user_id: str, cosmetic_id: str, decide: PurchaseDecision) -> PurchaseResult:
        current = self._current(user_id)
        result = decide(current, set(self._owned.get(user_id, set())))
        if result.success:
            self._economy[user_id] = current.evolve(wallet=result.wallet)
            self._owned.setdefault(user_id, set()).add(cosmetic_id)
        return result
