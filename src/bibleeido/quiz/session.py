"""Quiz session state machine — per-question timing, combo and points.

State progression: idle -> in_question -> answered -> (in_question | complete)

One session lives for one attempt at a lesson, daily challenge or milestone
quiz. The driver decides when the attempt is over (last question answered or
hearts exhausted) and calls ``complete()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from bibleeido.config import Settings
from bibleeido.errors import QuizStateError
from bibleeido.quiz.rewards import round_half_up

logger = logging.getLogger(__name__)

IDLE = "idle"
IN_QUESTION = "in_question"
ANSWERED = "answered"
COMPLETE = "complete"

VALID_TRANSITIONS: dict[str, list[str]] = {
    IDLE: [IN_QUESTION, COMPLETE],
    IN_QUESTION: [ANSWERED],
    ANSWERED: [IN_QUESTION, COMPLETE],
    COMPLETE: [],
}

# (minimum combo, multiplier), highest first
DEFAULT_COMBO_TIERS: tuple[tuple[int, float], ...] = (
    (5, 3.0),
    (4, 2.5),
    (3, 2.0),
    (2, 1.5),
    (1, 1.0),
)


@dataclass(frozen=True)
class ScoringConfig:
    """Scoring constants for one quiz attempt."""

    base_points: int = 10
    fast_answer_seconds: float = 5.0
    fast_answer_bonus: int = 5
    combo_tiers: tuple[tuple[int, float], ...] = DEFAULT_COMBO_TIERS

    @classmethod
    def from_settings(cls, settings: Settings) -> ScoringConfig:
        return cls(
            base_points=settings.base_points,
            fast_answer_seconds=settings.fast_answer_seconds,
            fast_answer_bonus=settings.fast_answer_bonus,
        )

    def combo_multiplier(self, combo: int) -> float:
        for minimum, multiplier in self.combo_tiers:
            if combo >= minimum:
                return multiplier
        return 1.0


@dataclass(frozen=True)
class AnswerResult:
    points_earned: int
    time_bonus: int
    combo_multiplier: float


@dataclass(frozen=True)
class QuizTally:
    score_percent: int
    total_points: int
    max_combo: int
    correct_answers: int
    questions_answered: int

    @property
    def is_perfect(self) -> bool:
        return self.score_percent == 100


def validate_transition(current_state: str, target_state: str) -> None:
    """Validate a state transition. Raises QuizStateError if invalid."""
    valid = VALID_TRANSITIONS.get(current_state, [])
    if target_state not in valid:
        raise QuizStateError(
            f"Invalid transition: {current_state} -> {target_state}. "
            f"Valid transitions: {valid}"
        )


def score_percent(correct_answers: int, question_count: int) -> int:
    """Share of correct answers as a whole percentage (0 for an empty set)."""
    if question_count <= 0:
        return 0
    return round_half_up(correct_answers / question_count * 100)


@dataclass
class QuizSession:
    """Mutable tally for a single attempt, owned by the active quiz screen."""

    config: ScoringConfig = field(default_factory=ScoringConfig)
    state: str = IDLE
    combo: int = 0
    max_combo: int = 0
    total_points: int = 0
    correct_answers: int = 0
    questions_answered: int = 0
    question_started_at: datetime | None = None

    def start_question(self, now: datetime) -> None:
        validate_transition(self.state, IN_QUESTION)
        self.state = IN_QUESTION
        self.question_started_at = now

    def answer_question(self, correct: bool, now: datetime) -> AnswerResult | None:
        """Score the answer to the current question.

        A repeated answer to an already answered question is ignored and
        returns None.
        """
        if self.state == ANSWERED:
            logger.debug("Ignoring repeated answer for the current question")
            return None
        validate_transition(self.state, ANSWERED)

        self.state = ANSWERED
        self.questions_answered += 1

        if not correct:
            self.combo = 0
            return AnswerResult(points_earned=0, time_bonus=0, combo_multiplier=1.0)

        self.combo += 1
        self.max_combo = max(self.max_combo, self.combo)
        self.correct_answers += 1

        multiplier = self.config.combo_multiplier(self.combo)
        time_bonus = self.config.fast_answer_bonus if self._elapsed_seconds(now) < self.config.fast_answer_seconds else 0
        points = round_half_up(self.config.base_points * multiplier) + time_bonus
        self.total_points += points

        return AnswerResult(points_earned=points, time_bonus=time_bonus, combo_multiplier=multiplier)

    def complete(self) -> None:
        validate_transition(self.state, COMPLETE)
        self.state = COMPLETE

    def reset_quiz(self) -> None:
        """Zero every counter for a fresh attempt or a retry."""
        self.state = IDLE
        self.combo = 0
        self.max_combo = 0
        self.total_points = 0
        self.correct_answers = 0
        self.questions_answered = 0
        self.question_started_at = None

    def tally(self, question_count: int) -> QuizTally:
        return QuizTally(
            score_percent=score_percent(self.correct_answers, question_count),
            total_points=self.total_points,
            max_combo=self.max_combo,
            correct_answers=self.correct_answers,
            questions_answered=self.questions_answered,
        )

    def _elapsed_seconds(self, now: datetime) -> float:
        if self.question_started_at is None:
            return float("inf")
        return (now - self.question_started_at).total_seconds()
