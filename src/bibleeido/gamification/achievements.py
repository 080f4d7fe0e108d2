"""Achievement evaluator — decides which rules a user newly qualifies for.

Pure: persistence of unlocks is the progress store's job, so calling this
repeatedly with the same unlocked set never yields duplicates.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class ConditionType(str, Enum):
    LESSONS_COMPLETED = "lessons_completed"
    STREAK = "streak"
    LEVEL = "level"
    PERFECT_LESSON = "perfect_lesson"


class AchievementRule(BaseModel):
    id: str
    name: str = ""
    icon: str = ""
    condition_type: ConditionType
    condition_value: float
    coin_reward: int = Field(default=0, ge=0)


@dataclass(frozen=True)
class AchievementContext:
    """Counters supplied by the caller; fields left as None never qualify."""

    lessons_completed: int | None = None
    streak: int | None = None
    level: int | None = None
    is_perfect_lesson: bool | None = None


def _qualifies(rule: AchievementRule, context: AchievementContext) -> bool:
    if rule.condition_type == ConditionType.LESSONS_COMPLETED:
        return context.lessons_completed is not None and context.lessons_completed >= rule.condition_value
    if rule.condition_type == ConditionType.STREAK:
        return context.streak is not None and context.streak >= rule.condition_value
    if rule.condition_type == ConditionType.LEVEL:
        return context.level is not None and context.level >= rule.condition_value
    if rule.condition_type == ConditionType.PERFECT_LESSON:
        return context.is_perfect_lesson is True and rule.condition_value == 1
    return False


def evaluate_achievements(
    rules: Iterable[AchievementRule],
    already_unlocked_ids: Collection[str],
    context: AchievementContext,
) -> list[AchievementRule]:
    """Rules not yet unlocked whose condition now holds, in input order."""
    return [
        rule
        for rule in rules
        if rule.id not in already_unlocked_ids and _qualifies(rule, context)
    ]
