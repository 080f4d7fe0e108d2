"""Economy service — applies quiz outcomes to a user's persisted economy.

Every operation reads what it needs first, then hands a pure transition to
``ProgressStore.update_economy``, which holds the user's economy row while it
computes and saves the new state. When the save fails the exception
propagates and nothing of the attempt is stored, so the client never shows
balances the store does not hold.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from bibleeido.config import Settings, get_settings
from bibleeido.gamification import hearts as heart_economy
from bibleeido.gamification.achievements import AchievementContext, AchievementRule, evaluate_achievements
from bibleeido.gamification.level_thresholds import add_xp
from bibleeido.gamification.shop import PurchaseResult, Wallet, purchase_cosmetic
from bibleeido.gamification.streak import today_in_zone, update_streak
from bibleeido.progress.store import ProgressStore, UserEconomyState
from bibleeido.quiz.rewards import NO_REWARD, Reward, settle_content_reward
from bibleeido.quiz.schemas import ContentItem, ContentKind
from bibleeido.quiz.session import QuizTally

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeartChange:
    state: UserEconomyState
    success: bool


@dataclass(frozen=True)
class AttemptOutcome:
    state: UserEconomyState
    reward: Reward
    passed: bool
    leveled_up: bool
    new_level: int
    unlocked: list[AchievementRule] = field(default_factory=list)
    already_completed_today: bool = False


def _regen_interval(settings: Settings) -> timedelta:
    return timedelta(minutes=settings.heart_regen_minutes)


async def record_wrong_answer(
    store: ProgressStore,
    user_id: str,
    now: datetime,
    settings: Settings | None = None,
) -> HeartChange:
    """Take a heart for a wrong answer. ``success=False`` means out of lives."""
    settings = settings or get_settings()

    def lose(current: UserEconomyState) -> tuple[UserEconomyState, HeartChange]:
        new_hearts, success = heart_economy.lose_heart(
            current.hearts, now, settings.max_hearts, _regen_interval(settings)
        )
        if not success:
            return current, HeartChange(state=current, success=False)
        updated = current.evolve(hearts=new_hearts)
        return updated, HeartChange(state=updated, success=True)

    return await store.update_economy(user_id, lose)


async def buy_heart(
    store: ProgressStore,
    user_id: str,
    now: datetime,
    settings: Settings | None = None,
) -> HeartChange:
    """Refill one heart with coins."""
    settings = settings or get_settings()

    def buy(current: UserEconomyState) -> tuple[UserEconomyState, HeartChange]:
        new_hearts, coins, success = heart_economy.buy_heart(
            current.hearts,
            current.wallet.coins,
            now,
            cost=settings.heart_cost_coins,
            max_hearts=settings.max_hearts,
            regen_interval=_regen_interval(settings),
        )
        if not success:
            return current, HeartChange(state=current, success=False)
        updated = current.evolve(hearts=new_hearts, wallet=Wallet(coins=coins, gems=current.wallet.gems))
        return updated, HeartChange(state=updated, success=True)

    change = await store.update_economy(user_id, buy)
    if change.success:
        logger.info("User %s bought a heart for %d coins", user_id, settings.heart_cost_coins)
    return change


async def purchase(
    store: ProgressStore,
    user_id: str,
    cosmetic_id: str,
) -> PurchaseResult | None:
    """Buy or unlock a cosmetic. Returns None for an unknown cosmetic.

    The charge and the grant are stored together; a failed grant leaves the
    wallet untouched.
    """
    cosmetic = await store.get_cosmetic(cosmetic_id)
    if cosmetic is None:
        return None

    return await store.apply_purchase(
        user_id,
        cosmetic.id,
        lambda current, owned: purchase_cosmetic(cosmetic, current.wallet, current.experience.level, owned),
    )


async def complete_attempt(
    store: ProgressStore,
    user_id: str,
    content: ContentItem,
    tally: QuizTally,
    now: datetime,
    settings: Settings | None = None,
) -> AttemptOutcome:
    """Settle a finished quiz attempt and persist the resulting economy.

    Lessons and milestones record progress and check achievements only when
    passed; daily challenges and defi quizzes always pay out. A daily
    challenge pays once per calendar day in the streak zone; a repeat
    completion on the same day earns nothing.
    """
    settings = settings or get_settings()
    today = today_in_zone(now, settings.streak_timezone)

    reward, passed = settle_content_reward(
        content,
        tally,
        challenge_base_xp=settings.challenge_base_xp,
        challenge_base_coins=settings.challenge_base_coins,
    )

    tracks_progress = content.kind in (ContentKind.LESSON, ContentKind.MILESTONE)
    checks_achievements = tracks_progress and passed
    lessons_completed = 0
    rules: list[AchievementRule] = []
    unlocked_ids: set[str] = set()
    if checks_achievements:
        previous = await store.get_content_progress(user_id, content.id)
        completed = await store.count_completed(user_id)
        lessons_completed = completed if previous.completed else completed + 1
        rules = await store.list_achievement_rules()
        unlocked_ids = await store.unlocked_achievement_ids(user_id)

    def settle(current: UserEconomyState) -> tuple[UserEconomyState, AttemptOutcome]:
        is_challenge = content.kind == ContentKind.CHALLENGE
        repeat = is_challenge and current.last_challenge_date == today
        earned = NO_REWARD if repeat else reward

        experience, leveled_up, new_level = add_xp(current.experience, earned.xp_earned)
        updated = current.evolve(
            experience=experience,
            wallet=Wallet(coins=current.wallet.coins + earned.coins_earned, gems=current.wallet.gems),
            streak=update_streak(current.streak, today),
            last_challenge_date=today if is_challenge else current.last_challenge_date,
        )

        unlocked: list[AchievementRule] = []
        if checks_achievements:
            context = AchievementContext(
                lessons_completed=lessons_completed,
                streak=updated.streak.current_streak,
                level=experience.level,
                is_perfect_lesson=tally.is_perfect,
            )
            unlocked = evaluate_achievements(rules, unlocked_ids, context)

        return updated, AttemptOutcome(
            state=updated,
            reward=earned,
            passed=passed,
            leveled_up=leveled_up,
            new_level=new_level,
            unlocked=unlocked,
            already_completed_today=repeat,
        )

    # Reads are done; nothing has been written if the economy update fails
    outcome = await store.update_economy(user_id, settle)
    if tracks_progress:
        await store.record_attempt(user_id, content.id, tally.score_percent, completed=passed)
    if outcome.unlocked:
        await store.unlock_achievements(user_id, [rule.id for rule in outcome.unlocked])

    if outcome.already_completed_today:
        logger.info("User %s already completed today's challenge; no reward", user_id)
    if outcome.leveled_up:
        logger.info("User %s reached level %d", user_id, outcome.new_level)
    for rule in outcome.unlocked:
        logger.info("User %s unlocked achievement %s", user_id, rule.id)

    return outcome
