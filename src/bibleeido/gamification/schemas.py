"""Pydantic request/response models for economy endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


# --- XP ---


class XPResponse(BaseModel):
    total_xp: int
    level: int
    level_title: str
    xp_into_level: int
    xp_for_level: int
    next_level: int
    next_title: str


class LevelEntry(BaseModel):
    level: int
    title: str
    cumulative: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]


# --- Hearts ---


class HeartsResponse(BaseModel):
    hearts: int
    max_hearts: int
    updated_at: datetime
    seconds_to_next_heart: int | None = None


class HeartChangeResponse(BaseModel):
    success: bool
    hearts: HeartsResponse
    coins: int


# --- Streak ---


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None
    effective_streak: int = 0


# --- Summary ---


class EconomySummaryResponse(BaseModel):
    user_id: str
    xp: XPResponse
    hearts: HeartsResponse
    streak: StreakResponse
    coins: int
    gems: int


# --- Attempts ---


class AttemptTally(BaseModel):
    """Final tally reported by the quiz screen."""

    question_count: int = Field(ge=0)
    correct_answers: int = Field(ge=0)
    total_points: int = Field(ge=0)
    max_combo: int = Field(ge=0)


class AttemptRequest(BaseModel):
    """Reward settings are looked up by ``content_id``, never taken from the client."""

    content_id: str
    tally: AttemptTally


class UnlockedAchievementResponse(BaseModel):
    id: str
    name: str
    icon: str
    coin_reward: int


class AttemptResponse(BaseModel):
    passed: bool
    score_percent: int
    xp_earned: int
    coins_earned: int
    leveled_up: bool
    new_level: int
    unlocked: list[UnlockedAchievementResponse] = []
    already_completed_today: bool = False
    summary: EconomySummaryResponse


# --- Shop ---


class PurchaseResponse(BaseModel):
    success: bool
    reason: str | None = None
    coins: int
    gems: int


class OwnedCosmeticsResponse(BaseModel):
    cosmetic_ids: list[str]
