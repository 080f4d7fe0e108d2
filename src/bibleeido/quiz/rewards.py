"""Reward settlement — converts a finished quiz tally into XP and coins."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bibleeido.errors import EconomyValidationError, require_non_negative
from bibleeido.quiz.schemas import ContentItem, ContentKind

if TYPE_CHECKING:
    from bibleeido.quiz.session import QuizTally

COMBO_BONUS_PER_STEP = 2
COMBO_BONUS_CAP = 20
CHALLENGE_BASE_XP = 25
CHALLENGE_BASE_COINS = 15
DEFAULT_PASS_PERCENT = 70


@dataclass(frozen=True)
class Reward:
    xp_earned: int
    coins_earned: int


NO_REWARD = Reward(xp_earned=0, coins_earned=0)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives, as the web client does."""
    return math.floor(value + 0.5)


def _validate_tally(score_percent: float, max_combo: int, total_points: int) -> None:
    if not 0 <= score_percent <= 100:
        raise EconomyValidationError(f"score_percent must be within [0, 100], got {score_percent}")
    require_non_negative("max_combo", max_combo)
    require_non_negative("total_points", total_points)


def settle_lesson_reward(
    base_xp: int,
    base_coins: int,
    score_percent: float,
    max_combo: int,
    total_points: int,
) -> Reward:
    """Scale base rewards by score and add the combo and points bonuses."""
    require_non_negative("base_xp", base_xp)
    require_non_negative("base_coins", base_coins)
    _validate_tally(score_percent, max_combo, total_points)

    combo_bonus = min(max_combo * COMBO_BONUS_PER_STEP, COMBO_BONUS_CAP)
    ratio = score_percent / 100

    xp = round_half_up(base_xp * ratio) + combo_bonus + round_half_up(total_points / 10)
    coins = round_half_up(base_coins * ratio) + round_half_up(total_points / 20)
    return Reward(xp_earned=xp, coins_earned=coins)


def settle_challenge_reward(
    score_percent: float,
    max_combo: int,
    total_points: int,
    base_xp: int = CHALLENGE_BASE_XP,
    base_coins: int = CHALLENGE_BASE_COINS,
) -> Reward:
    """Daily challenge variant with fixed bases."""
    return settle_lesson_reward(base_xp, base_coins, score_percent, max_combo, total_points)


def is_passed(score_percent: float, required_score_percent: float = DEFAULT_PASS_PERCENT) -> bool:
    return score_percent >= required_score_percent


def settle_content_reward(
    content: ContentItem,
    tally: QuizTally,
    challenge_base_xp: int = CHALLENGE_BASE_XP,
    challenge_base_coins: int = CHALLENGE_BASE_COINS,
) -> tuple[Reward, bool]:
    """Settle a finished attempt on ``content``.

    Returns the reward and whether the attempt passed. Lessons and milestones
    pay nothing when failed; challenges and defi quizzes always pay.
    """
    passed = is_passed(tally.score_percent, content.required_score_percent)

    if content.kind == ContentKind.CHALLENGE:
        reward = settle_challenge_reward(
            tally.score_percent, tally.max_combo, tally.total_points,
            base_xp=challenge_base_xp, base_coins=challenge_base_coins,
        )
        return reward, passed

    if not passed and not content.always_rewarded:
        return NO_REWARD, False

    reward = settle_lesson_reward(
        content.base_xp_reward,
        content.base_coin_reward,
        tally.score_percent,
        tally.max_combo,
        tally.total_points,
    )
    return reward, passed
