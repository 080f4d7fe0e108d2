"""Pydantic models for content records read from the storage collaborator."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ContentKind(str, Enum):
    LESSON = "lesson"
    CHALLENGE = "challenge"
    MILESTONE = "milestone"
    DEFI = "defi"


class ContentItem(BaseModel):
    """A lesson, daily challenge or mastery-path milestone.

    Negative rewards indicate corrupt content and are rejected on read.
    """

    id: str
    kind: ContentKind = ContentKind.LESSON
    base_xp_reward: int = Field(default=0, ge=0)
    base_coin_reward: int = Field(default=0, ge=0)
    required_score_percent: int = Field(default=70, ge=0, le=100)

    @property
    def always_rewarded(self) -> bool:
        """Daily challenges and defi quizzes pay out partial rewards even when failed."""
        return self.kind in (ContentKind.CHALLENGE, ContentKind.DEFI)
