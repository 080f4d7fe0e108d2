"""ORM models for the persisted economy, progress and unlock tables."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from bibleeido.db.base import Base


# ---------------------------------------------------------------------------
# Economy
# ---------------------------------------------------------------------------


class UserEconomy(Base):
    """Denormalized economy summary — single row per user."""

    __tablename__ = "user_economy"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    xp: Mapped[int] = mapped_column(BigInteger, nullable=False, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    coins: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    gems: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    hearts: Mapped[int] = mapped_column(Integer, nullable=False, server_default="5")
    hearts_updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_challenge_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class UserProgress(Base):
    """Best score and completion per user and content item (lesson or milestone)."""

    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "content_id", name="user_progress_user_id_content_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    content_id: Mapped[str] = mapped_column(String(64), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    best_score: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_attempt_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class ContentRecord(Base):
    """Reward settings of a lesson, daily challenge or milestone (read-only here)."""

    __tablename__ = "content_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, server_default="lesson")
    base_xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    base_coin_reward: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    required_score_percent: Mapped[int] = mapped_column(Integer, nullable=False, server_default="70")


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class Achievement(Base):
    __tablename__ = "achievements"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    icon: Mapped[str] = mapped_column(String(64), nullable=False, server_default="")
    condition_type: Mapped[str] = mapped_column(String(32), nullable=False)
    condition_value: Mapped[float] = mapped_column(Float, nullable=False)
    coin_reward: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")


class UserAchievement(Base):
    """Existence of a row means the achievement is unlocked."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="user_achievements_user_id_achievement_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    achievement_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("achievements.id", ondelete="CASCADE"), nullable=False
    )
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Cosmetics
# ---------------------------------------------------------------------------


class CosmeticItem(Base):
    __tablename__ = "cosmetics"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    cosmetic_type: Mapped[str] = mapped_column(String(32), nullable=False)
    unlock_type: Mapped[str] = mapped_column(String(16), nullable=False, server_default="free")
    unlock_value: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")


class UserCosmetic(Base):
    __tablename__ = "user_cosmetics"
    __table_args__ = (
        UniqueConstraint("user_id", "cosmetic_id", name="user_cosmetics_user_id_cosmetic_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    cosmetic_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("cosmetics.id", ondelete="CASCADE"), nullable=False
    )
    is_equipped: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
