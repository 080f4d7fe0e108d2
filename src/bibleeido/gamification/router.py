"""Economy API endpoints — levels, hearts, attempt settlement and shop."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException

from bibleeido.config import Settings, get_settings
from bibleeido.dependencies import get_progress_store
from bibleeido.gamification import economy_service
from bibleeido.gamification.hearts import actual_hearts, time_to_next_heart
from bibleeido.gamification.level_thresholds import LEVEL_TITLES, compute_level, xp_for_level
from bibleeido.gamification.schemas import (
    AllLevelsResponse,
    AttemptRequest,
    AttemptResponse,
    EconomySummaryResponse,
    HeartChangeResponse,
    HeartsResponse,
    LevelEntry,
    OwnedCosmeticsResponse,
    PurchaseResponse,
    StreakResponse,
    UnlockedAchievementResponse,
    XPResponse,
)
from bibleeido.gamification.streak import effective_streak, today_in_zone
from bibleeido.progress.store import ProgressStore, UserEconomyState
from bibleeido.quiz.session import QuizTally, score_percent

router = APIRouter(prefix="/api/v1", tags=["Economy"])


def _hearts_response(state: UserEconomyState, now: datetime, settings: Settings) -> HeartsResponse:
    interval = timedelta(minutes=settings.heart_regen_minutes)
    return HeartsResponse(
        hearts=actual_hearts(state.hearts, now, settings.max_hearts, interval),
        max_hearts=settings.max_hearts,
        updated_at=state.hearts.updated_at,
        seconds_to_next_heart=time_to_next_heart(state.hearts, now, settings.max_hearts, interval),
    )


def _summary(state: UserEconomyState, now: datetime, settings: Settings) -> EconomySummaryResponse:
    level_info = compute_level(state.experience.xp)
    return EconomySummaryResponse(
        user_id=state.user_id,
        xp=XPResponse(
            total_xp=state.experience.xp,
            level=level_info["level"],
            level_title=level_info["title"],
            xp_into_level=level_info["xp_into_level"],
            xp_for_level=level_info["xp_for_level"],
            next_level=level_info["next_level"],
            next_title=level_info["next_title"],
        ),
        hearts=_hearts_response(state, now, settings),
        streak=StreakResponse(
            current_streak=state.streak.current_streak,
            longest_streak=state.streak.longest_streak,
            last_activity_date=state.streak.last_activity_date,
            effective_streak=effective_streak(state.streak, today_in_zone(now, settings.streak_timezone)),
        ),
        coins=state.wallet.coins,
        gems=state.wallet.gems,
    )


# ── Public endpoints ──


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get the titled levels with their cumulative XP thresholds."""
    return AllLevelsResponse(levels=[
        LevelEntry(level=level, title=title, cumulative=xp_for_level(level))
        for level, title in sorted(LEVEL_TITLES.items())
    ])


# ── Per-user endpoints ──


@router.get("/users/{user_id}/economy", response_model=EconomySummaryResponse)
async def get_economy(
    user_id: str,
    store: ProgressStore = Depends(get_progress_store),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
):
    """XP, level, hearts, streak and balances as of now."""
    now = datetime.now(timezone.utc)
    state = await store.load_economy(user_id)
    return _summary(state, now, settings)


@router.post("/users/{user_id}/hearts/lose", response_model=HeartChangeResponse)
async def lose_heart(
    user_id: str,
    store: ProgressStore = Depends(get_progress_store),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
):
    """Take a heart after a wrong answer; success=false means out of lives."""
    now = datetime.now(timezone.utc)
    change = await economy_service.record_wrong_answer(store, user_id, now, settings)
    return HeartChangeResponse(
        success=change.success,
        hearts=_hearts_response(change.state, now, settings),
        coins=change.state.wallet.coins,
    )


@router.post("/users/{user_id}/hearts/buy", response_model=HeartChangeResponse)
async def buy_heart(
    user_id: str,
    store: ProgressStore = Depends(get_progress_store),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
):
    """Refill one heart with coins."""
    now = datetime.now(timezone.utc)
    change = await economy_service.buy_heart(store, user_id, now, settings)
    return HeartChangeResponse(
        success=change.success,
        hearts=_hearts_response(change.state, now, settings),
        coins=change.state.wallet.coins,
    )


@router.post("/users/{user_id}/attempts", response_model=AttemptResponse)
async def complete_attempt(
    user_id: str,
    body: AttemptRequest,
    store: ProgressStore = Depends(get_progress_store),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
):
    """Settle a finished lesson, challenge or milestone attempt."""
    content = await store.get_content(body.content_id)
    if content is None:
        raise HTTPException(status_code=404, detail="Content not found")

    now = datetime.now(timezone.utc)
    tally = QuizTally(
        score_percent=score_percent(body.tally.correct_answers, body.tally.question_count),
        total_points=body.tally.total_points,
        max_combo=body.tally.max_combo,
        correct_answers=body.tally.correct_answers,
        questions_answered=body.tally.question_count,
    )
    outcome = await economy_service.complete_attempt(store, user_id, content, tally, now, settings)

    return AttemptResponse(
        passed=outcome.passed,
        score_percent=tally.score_percent,
        xp_earned=outcome.reward.xp_earned,
        coins_earned=outcome.reward.coins_earned,
        leveled_up=outcome.leveled_up,
        new_level=outcome.new_level,
        unlocked=[
            UnlockedAchievementResponse(id=r.id, name=r.name, icon=r.icon, coin_reward=r.coin_reward)
            for r in outcome.unlocked
        ],
        already_completed_today=outcome.already_completed_today,
        summary=_summary(outcome.state, now, settings),
    )


@router.post("/users/{user_id}/cosmetics/{cosmetic_id}/purchase", response_model=PurchaseResponse)
async def purchase_cosmetic(
    user_id: str,
    cosmetic_id: str,
    store: ProgressStore = Depends(get_progress_store),  # noqa: B008
):
    """Unlock a cosmetic, paying its coin or gem price when it has one."""
    result = await economy_service.purchase(store, user_id, cosmetic_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Cosmetic not found")
    return PurchaseResponse(
        success=result.success,
        reason=result.reason,
        coins=result.wallet.coins,
        gems=result.wallet.gems,
    )


@router.get("/users/{user_id}/cosmetics", response_model=OwnedCosmeticsResponse)
async def list_owned_cosmetics(
    user_id: str,
    store: ProgressStore = Depends(get_progress_store),  # noqa: B008
):
    """Cosmetics the user has unlocked."""
    owned = await store.owned_cosmetic_ids(user_id)
    return OwnedCosmeticsResponse(cosmetic_ids=sorted(owned))
