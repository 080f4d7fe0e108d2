"""SQL-backed progress store for authenticated users."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bibleeido.db.models import (
    Achievement,
    ContentRecord,
    CosmeticItem,
    UserAchievement,
    UserCosmetic,
    UserEconomy,
    UserProgress,
)
from bibleeido.gamification.achievements import AchievementRule
from bibleeido.gamification.hearts import MAX_HEARTS, HeartState
from bibleeido.gamification.level_thresholds import ExperienceState
from bibleeido.gamification.shop import Cosmetic, PurchaseResult, Wallet
from bibleeido.gamification.streak import StreakState
from bibleeido.progress.store import ContentProgress, PurchaseDecision, UserEconomyState
from bibleeido.quiz.schemas import ContentItem

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _to_state(row: UserEconomy) -> UserEconomyState:
    return UserEconomyState(
        user_id=row.user_id,
        experience=ExperienceState(xp=row.xp, level=row.level),
        wallet=Wallet(coins=row.coins, gems=row.gems),
        hearts=HeartState(count=row.hearts, updated_at=row.hearts_updated_at),
        streak=StreakState(
            current_streak=row.current_streak,
            longest_streak=row.longest_streak,
            last_activity_date=row.last_activity_date,
        ),
        last_challenge_date=row.last_challenge_date,
    )


def _write_state(row: UserEconomy, state: UserEconomyState) -> None:
    row.xp = state.experience.xp
    row.level = state.experience.level
    row.coins = state.wallet.coins
    row.gems = state.wallet.gems
    row.hearts = state.hearts.count
    row.hearts_updated_at = state.hearts.updated_at
    row.current_streak = state.streak.current_streak
    row.longest_streak = state.streak.longest_streak
    row.last_activity_date = state.streak.last_activity_date
    row.last_challenge_date = state.last_challenge_date


class SqlProgressStore:
    """Each call runs in its own transaction.

    Economy updates lock the user's row (``SELECT ... FOR UPDATE``) before
    reading it, so concurrent attempts for one user apply one after another.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def load_economy(self, user_id: str) -> UserEconomyState:
        async with self._session_factory() as db:
            row = await db.get(UserEconomy, user_id)
            if row is None:
                return UserEconomyState(user_id=user_id)
            return _to_state(row)

    async def _locked_economy(self, db: AsyncSession, user_id: str) -> UserEconomy:
        """Lock the user's economy row, creating the default row on first use."""
        row = await db.get(UserEconomy, user_id, with_for_update=True)
        if row is not None:
            return row
        await db.execute(
            pg_insert(UserEconomy)
            .values(user_id=user_id, hearts=MAX_HEARTS, hearts_updated_at=datetime.now(timezone.utc))
            .on_conflict_do_nothing(index_elements=[UserEconomy.user_id])
        )
        return await db.get_one(UserEconomy, user_id, with_for_update=True, populate_existing=True)

    async def update_economy(
        self, user_id: str, apply: Callable[[UserEconomyState], tuple[UserEconomyState, T]]
    ) -> T:
        async with self._session_factory() as db, db.begin():
            row = await self._locked_economy(db, user_id)
            updated, result = apply(_to_state(row))
            _write_state(row, updated)
        return result

    async def get_content(self, content_id: str) -> ContentItem | None:
        async with self._session_factory() as db:
            record = await db.get(ContentRecord, content_id)
            if record is None:
                return None
            return ContentItem(
                id=record.id,
                kind=record.kind,
                base_xp_reward=record.base_xp_reward,
                base_coin_reward=record.base_coin_reward,
                required_score_percent=record.required_score_percent,
            )

    async def _progress_row(self, db: AsyncSession, user_id: str, content_id: str) -> UserProgress | None:
        result = await db.execute(
            select(UserProgress).where(
                UserProgress.user_id == user_id,
                UserProgress.content_id == content_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_content_progress(self, user_id: str, content_id: str) -> ContentProgress:
        async with self._session_factory() as db:
            row = await self._progress_row(db, user_id, content_id)
            if row is None:
                return ContentProgress(content_id=content_id)
            return ContentProgress(
                content_id=content_id,
                completed=row.completed,
                best_score=row.best_score,
                attempts=row.attempts,
            )

    async def record_attempt(self, user_id: str, content_id: str, score: int, completed: bool) -> ContentProgress:
        async with self._session_factory() as db, db.begin():
            row = await self._progress_row(db, user_id, content_id)
            if row is None:
                row = UserProgress(user_id=user_id, content_id=content_id, completed=False, best_score=0, attempts=0)
                db.add(row)
            current = ContentProgress(
                content_id=content_id,
                completed=row.completed,
                best_score=row.best_score,
                attempts=row.attempts,
            )
            updated = current.with_attempt(score, completed)
            row.completed = updated.completed
            row.best_score = updated.best_score
            row.attempts = updated.attempts
            row.last_attempt_at = datetime.now(timezone.utc)
        return updated

    async def count_completed(self, user_id: str) -> int:
        async with self._session_factory() as db:
            result = await db.execute(
                select(func.count()).select_from(UserProgress).where(
                    UserProgress.user_id == user_id,
                    UserProgress.completed.is_(True),
                )
            )
            return result.scalar_one()

    async def list_achievement_rules(self) -> list[AchievementRule]:
        async with self._session_factory() as db:
            result = await db.execute(select(Achievement).order_by(Achievement.condition_value))
            return [
                AchievementRule(
                    id=a.id,
                    name=a.name,
                    icon=a.icon,
                    condition_type=a.condition_type,
                    condition_value=a.condition_value,
                    coin_reward=a.coin_reward,
                )
                for a in result.scalars()
            ]

    async def unlocked_achievement_ids(self, user_id: str) -> set[str]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
            )
            return set(result.scalars())

    async def unlock_achievements(self, user_id: str, achievement_ids: Iterable[str]) -> None:
        for achievement_id in achievement_ids:
            try:
                async with self._session_factory() as db, db.begin():
                    db.add(UserAchievement(user_id=user_id, achievement_id=achievement_id))
            except IntegrityError:
                # Unique constraint: unlocked concurrently by another request
                logger.info("Achievement %s already unlocked for %s", achievement_id, user_id)

    async def get_cosmetic(self, cosmetic_id: str) -> Cosmetic | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(CosmeticItem).where(
                    CosmeticItem.id == cosmetic_id,
                    CosmeticItem.is_active.is_(True),
                )
            )
            item = result.scalar_one_or_none()
            if item is None:
                return None
            return Cosmetic(
                id=item.id,
                name=item.name,
                cosmetic_type=item.cosmetic_type,
                unlock_type=item.unlock_type,
                unlock_value=item.unlock_value,
            )

    async def owned_cosmetic_ids(self, user_id: str) -> set[str]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(UserCosmetic.cosmetic_id).where(UserCosmetic.user_id == user_id)
            )
            return set(result.scalars())

    async def apply_purchase(self, user_id: str, cosmetic_id: str, decide: PurchaseDecision) -> PurchaseResult:
        async with self._session_factory() as db, db.begin():
            row = await self._locked_economy(db, user_id)
            owned = await db.execute(
                select(UserCosmetic.cosmetic_id).where(UserCosmetic.user_id == user_id)
            )
            result = decide(_to_state(row), set(owned.scalars()))
            if result.success:
                row.coins = result.wallet.coins
                row.gems = result.wallet.gems
                db.add(UserCosmetic(user_id=user_id, cosmetic_id=cosmetic_id))
        return result
