"""Economy service tests — attempt settlement against the in-memory store."""

from __future__ import annotations

import asyncio
from datetime import date, timedelta

import pytest

from bibleeido.config import Settings
from bibleeido.gamification import economy_service
from bibleeido.gamification.hearts import HeartState
from bibleeido.gamification.level_thresholds import ExperienceState
from bibleeido.gamification.shop import Wallet
from bibleeido.gamification.streak import StreakState
from bibleeido.progress.store import LocalProgressStore, UserEconomyState
from bibleeido.quiz.schemas import ContentItem, ContentKind
from bibleeido.quiz.session import QuizTally

SETTINGS = Settings()
LESSON = ContentItem(id="lesson-genesis-1", kind=ContentKind.LESSON, base_xp_reward=100, base_coin_reward=50)
CHALLENGE = ContentItem(id="daily", kind=ContentKind.CHALLENGE)


def _tally(correct: int, count: int, points: int = 0, max_combo: int = 0) -> QuizTally:
    return QuizTally(
        score_percent=round(correct / count * 100),
        total_points=points,
        max_combo=max_combo,
        correct_answers=correct,
        questions_answered=count,
    )


class FailingUpdateStore(LocalProgressStore):
    async def update_economy(self, user_id, apply):
        apply(await self.load_economy(user_id))
        raise ConnectionError("storage unavailable")


class TestHearts:
    @pytest.mark.asyncio
    async def test_wrong_answers_until_out_of_lives(self, store, seed_economy, now):
        await seed_economy(UserEconomyState(user_id="u1", hearts=HeartState(1, now)))

        first = await economy_service.record_wrong_answer(store, "u1", now, SETTINGS)
        assert first.success is True
        assert first.state.hearts.count == 0

        second = await economy_service.record_wrong_answer(store, "u1", now, SETTINGS)
        assert second.success is False
        assert (await store.load_economy("u1")).hearts.count == 0

    @pytest.mark.asyncio
    async def test_buy_heart_needs_coins(self, store, seed_economy, now):
        await seed_economy(UserEconomyState(user_id="u1", hearts=HeartState(2, now), wallet=Wallet(coins=15)))
        result = await economy_service.buy_heart(store, "u1", now, SETTINGS)
        assert result.success is False
        assert result.state.wallet.coins == 15

        await seed_economy(UserEconomyState(user_id="u1", hearts=HeartState(2, now), wallet=Wallet(coins=25)))
        result = await economy_service.buy_heart(store, "u1", now, SETTINGS)
        assert result.success is True
        assert result.state.wallet.coins == 5
        assert result.state.hearts.count == 3


class TestCompleteAttempt:
    @pytest.mark.asyncio
    async def test_passed_lesson_awards_and_unlocks(self, store, now):
        outcome = await economy_service.complete_attempt(
            store, "u1", LESSON, _tally(5, 5, points=200, max_combo=5), now, SETTINGS
        )
        assert outcome.passed is True
        assert (outcome.reward.xp_earned, outcome.reward.coins_earned) == (130, 60)
        assert outcome.leveled_up is True
        assert outcome.new_level == 2
        assert [r.id for r in outcome.unlocked] == ["first_lesson", "perfect"]

        saved = await store.load_economy("u1")
        assert saved.experience == ExperienceState(xp=130, level=2)
        assert saved.wallet.coins == 60
        assert saved.streak.current_streak == 1
        assert saved.streak.last_activity_date == now.date()
        assert await store.unlocked_achievement_ids("u1") == {"first_lesson", "perfect"}
        assert (await store.get_content_progress("u1", LESSON.id)).completed is True

    @pytest.mark.asyncio
    async def test_repeat_attempt_does_not_reunlock(self, store, now):
        await economy_service.complete_attempt(store, "u1", LESSON, _tally(5, 5), now, SETTINGS)
        outcome = await economy_service.complete_attempt(store, "u1", LESSON, _tally(5, 5), now, SETTINGS)
        assert outcome.unlocked == []
        progress = await store.get_content_progress("u1", LESSON.id)
        assert progress.attempts == 2

    @pytest.mark.asyncio
    async def test_failed_lesson_records_attempt_without_reward(self, store, now):
        outcome = await economy_service.complete_attempt(
            store, "u1", LESSON, _tally(2, 5, points=20, max_combo=2), now, SETTINGS
        )
        assert outcome.passed is False
        assert outcome.reward.xp_earned == 0
        assert outcome.unlocked == []

        progress = await store.get_content_progress("u1", LESSON.id)
        assert progress.completed is False
        assert progress.best_score == 40
        assert await store.count_completed("u1") == 0

    @pytest.mark.asyncio
    async def test_challenge_pays_and_keeps_streak(self, store, seed_economy, now):
        yesterday = now.date() - timedelta(days=1)
        await seed_economy(UserEconomyState(
            user_id="u1",
            streak=StreakState(current_streak=6, longest_streak=6, last_activity_date=yesterday),
        ))
        outcome = await economy_service.complete_attempt(
            store, "u1", CHALLENGE, _tally(1, 5, points=10, max_combo=1), now, SETTINGS
        )
        assert outcome.passed is False
        assert outcome.reward.xp_earned > 0
        assert outcome.already_completed_today is False
        assert outcome.state.streak.current_streak == 7
        assert outcome.state.last_challenge_date == now.date()
        assert outcome.unlocked == []
        assert await store.count_completed("u1") == 0

    @pytest.mark.asyncio
    async def test_challenge_pays_once_per_day(self, store, now):
        tally = _tally(5, 5, points=100, max_combo=5)
        first = await economy_service.complete_attempt(store, "u1", CHALLENGE, tally, now, SETTINGS)
        assert (first.reward.xp_earned, first.reward.coins_earned) == (45, 20)

        for minutes in (0, 30):
            again = await economy_service.complete_attempt(
                store, "u1", CHALLENGE, tally, now + timedelta(minutes=minutes), SETTINGS
            )
            assert again.already_completed_today is True
            assert (again.reward.xp_earned, again.reward.coins_earned) == (0, 0)

        saved = await store.load_economy("u1")
        assert saved.experience.xp == 45
        assert saved.wallet.coins == 20

        tomorrow = await economy_service.complete_attempt(
            store, "u1", CHALLENGE, tally, now + timedelta(days=1), SETTINGS
        )
        assert tomorrow.already_completed_today is False
        assert (await store.load_economy("u1")).wallet.coins == 40

    @pytest.mark.asyncio
    async def test_challenge_day_follows_streak_zone(self, store, now):
        # 12:00 UTC is already the next day in Pacific/Auckland
        auckland = Settings(streak_timezone="Pacific/Auckland")
        tally = _tally(3, 5)
        await economy_service.complete_attempt(store, "u1", CHALLENGE, tally, now, auckland)
        saved = await store.load_economy("u1")
        assert saved.last_challenge_date == date(2026, 3, 3)

        evening = now + timedelta(hours=11, minutes=30)
        again = await economy_service.complete_attempt(store, "u1", CHALLENGE, tally, evening, auckland)
        assert again.already_completed_today is False

    @pytest.mark.asyncio
    async def test_lessons_are_not_limited_per_day(self, store, now):
        await economy_service.complete_attempt(store, "u1", CHALLENGE, _tally(5, 5), now, SETTINGS)
        outcome = await economy_service.complete_attempt(store, "u1", LESSON, _tally(5, 5), now, SETTINGS)
        assert outcome.already_completed_today is False
        assert outcome.reward.xp_earned == 100

    @pytest.mark.asyncio
    async def test_streak_achievement_after_lesson(self, store, seed_economy, now):
        await seed_economy(UserEconomyState(
            user_id="u1",
            streak=StreakState(current_streak=6, longest_streak=6, last_activity_date=date(2026, 3, 1)),
        ))
        outcome = await economy_service.complete_attempt(store, "u1", LESSON, _tally(4, 5), now, SETTINGS)
        assert "streak_7" in [r.id for r in outcome.unlocked]

    @pytest.mark.asyncio
    async def test_concurrent_attempts_both_count(self, store, now):
        other = ContentItem(id="lesson-exodus-1", base_xp_reward=100, base_coin_reward=50)
        tally = _tally(5, 5, points=200, max_combo=5)
        await asyncio.gather(
            economy_service.complete_attempt(store, "u1", LESSON, tally, now, SETTINGS),
            economy_service.complete_attempt(store, "u1", other, tally, now, SETTINGS),
        )
        saved = await store.load_economy("u1")
        assert saved.experience.xp == 260
        assert saved.wallet.coins == 120
        assert await store.count_completed("u1") == 2

    @pytest.mark.asyncio
    async def test_failed_persist_keeps_stored_state(self, achievement_rules, now):
        failing = FailingUpdateStore(rules=achievement_rules)
        with pytest.raises(ConnectionError):
            await economy_service.complete_attempt(failing, "u1", LESSON, _tally(5, 5), now, SETTINGS)

        stored = await failing.load_economy("u1")
        assert stored.experience.xp == 0
        assert await failing.unlocked_achievement_ids("u1") == set()
        assert (await failing.get_content_progress("u1", LESSON.id)).attempts == 0


class TestPurchase:
    @pytest.mark.asyncio
    async def test_unknown_cosmetic(self, store):
        assert await economy_service.purchase(store, "u1", "nope") is None

    @pytest.mark.asyncio
    async def test_purchase_and_own(self, store, seed_economy):
        await seed_economy(UserEconomyState(user_id="u1", wallet=Wallet(coins=120)))
        result = await economy_service.purchase(store, "u1", "frame_gold")
        assert result.success is True
        assert (await store.load_economy("u1")).wallet.coins == 20
        assert await store.owned_cosmetic_ids("u1") == {"frame_gold"}

        again = await economy_service.purchase(store, "u1", "frame_gold")
        assert again.success is False
        assert again.reason == "already_owned"

    @pytest.mark.asyncio
    async def test_concurrent_purchases_charge_once(self, store, seed_economy):
        await seed_economy(UserEconomyState(user_id="u1", wallet=Wallet(coins=250)))
        results = await asyncio.gather(
            economy_service.purchase(store, "u1", "frame_gold"),
            economy_service.purchase(store, "u1", "frame_gold"),
        )
        assert sorted(r.success for r in results) == [False, True]
        assert (await store.load_economy("u1")).wallet.coins == 150
        assert await store.owned_cosmetic_ids("u1") == {"frame_gold"}

    @pytest.mark.asyncio
    async def test_declined_purchase_grants_nothing(self, store):
        result = await economy_service.purchase(store, "u1", "badge_scholar")
        assert result.success is False
        assert result.reason == "level_3_required"
        assert await store.owned_cosmetic_ids("u1") == set()
