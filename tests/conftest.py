"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bibleeido.config import get_settings
from bibleeido.dependencies import get_progress_store
from bibleeido.gamification.achievements import AchievementRule, ConditionType
from bibleeido.gamification.shop import Cosmetic, UnlockType
from bibleeido.main import create_app
from bibleeido.progress.store import LocalProgressStore, UserEconomyState
from bibleeido.quiz.schemas import ContentItem, ContentKind

NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def achievement_rules() -> list[AchievementRule]:
    return [
        AchievementRule(id="first_lesson", name="Premier pas", icon="footprints",
                        condition_type=ConditionType.LESSONS_COMPLETED, condition_value=1, coin_reward=10),
        AchievementRule(id="ten_lessons", name="Assidu", icon="book",
                        condition_type=ConditionType.LESSONS_COMPLETED, condition_value=10, coin_reward=50),
        AchievementRule(id="streak_7", name="Fidèle", icon="flame",
                        condition_type=ConditionType.STREAK, condition_value=7, coin_reward=30),
        AchievementRule(id="level_5", name="Érudit", icon="star",
                        condition_type=ConditionType.LEVEL, condition_value=5, coin_reward=40),
        AchievementRule(id="perfect", name="Sans faute", icon="trophy",
                        condition_type=ConditionType.PERFECT_LESSON, condition_value=1, coin_reward=25),
    ]


@pytest.fixture
def cosmetics() -> list[Cosmetic]:
    return [
        Cosmetic(id="frame_gold", name="Cadre doré", unlock_type=UnlockType.COINS, unlock_value=100),
        Cosmetic(id="frame_ruby", name="Cadre rubis", unlock_type=UnlockType.GEMS, unlock_value=5),
        Cosmetic(id="badge_scholar", name="Érudit", unlock_type=UnlockType.LEVEL, unlock_value=3),
    ]


@pytest.fixture
def contents() -> list[ContentItem]:
    return [
        ContentItem(id="lesson-1", kind=ContentKind.LESSON, base_xp_reward=100, base_coin_reward=50),
        ContentItem(id="lesson-2", kind=ContentKind.LESSON, base_xp_reward=100, base_coin_reward=50),
        ContentItem(id="milestone-1", kind=ContentKind.MILESTONE, base_xp_reward=40,
                    base_coin_reward=20, required_score_percent=80),
        ContentItem(id="daily", kind=ContentKind.CHALLENGE),
    ]


@pytest.fixture
def store(achievement_rules, cosmetics, contents) -> LocalProgressStore:
    """Fresh in-memory progress store seeded with rules, cosmetics and content."""
    return LocalProgressStore(rules=achievement_rules, cosmetics=cosmetics, contents=contents)


@pytest.fixture
def seed_economy(store: LocalProgressStore):
    """Overwrite a user's stored economy before the test acts on it."""

    async def seed(state: UserEconomyState) -> None:
        await store.update_economy(state.user_id, lambda _: (state, None))

    return seed


@pytest_asyncio.fixture
async def client(store: LocalProgressStore) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client backed by the in-memory store."""
    get_settings.cache_clear()
    app = create_app()
    app.dependency_overrides[get_progress_store] = lambda: store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
