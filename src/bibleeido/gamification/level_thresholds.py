"""Level curve and computation.

Reaching level ``n + 1`` requires ``50 * n * (n + 1)`` cumulative XP:
0, 100, 300, 600, 1000, 1500, ... The web client's XP bar uses the same curve.
"""

from __future__ import annotations

from dataclasses import dataclass

from bibleeido.errors import require_non_negative

XP_CURVE_FACTOR = 50

LEVEL_TITLES: dict[int, str] = {
    1: "Disciple",
    2: "Auditeur",
    3: "Lecteur",
    4: "Chercheur",
    5: "Serviteur",
    6: "Intendant",
    7: "Gardien",
    8: "Messager",
    9: "Scribe",
    10: "Enseignant",
    15: "Sage",
    20: "Prophète",
    25: "Apôtre",
}


@dataclass(frozen=True)
class ExperienceState:
    xp: int = 0
    level: int = 1


def xp_for_level(level: int) -> int:
    """Cumulative XP at which ``level`` starts."""
    if level <= 1:
        return 0
    return XP_CURVE_FACTOR * (level - 1) * level


def level_for_xp(xp: int) -> int:
    """Level reached with ``xp`` cumulative experience points."""
    require_non_negative("xp", xp)

    level = 1
    while xp >= xp_for_level(level + 1):
        level += 1
    return level


def title_for_level(level: int) -> str:
    """Title of the highest titled level not above ``level``."""
    title = LEVEL_TITLES[1]
    for threshold in sorted(LEVEL_TITLES):
        if level >= threshold:
            title = LEVEL_TITLES[threshold]
    return title


def compute_level(total_xp: int) -> dict:
    """Compute level info from total XP for progress displays."""
    level = level_for_xp(total_xp)
    start = xp_for_level(level)
    end = xp_for_level(level + 1)

    return {
        "level": level,
        "title": title_for_level(level),
        "xp_into_level": total_xp - start,
        "xp_for_level": end - start,
        "next_level": level + 1,
        "next_title": title_for_level(level + 1),
    }


def add_xp(state: ExperienceState, amount: int) -> tuple[ExperienceState, bool, int]:
    """Add XP and report whether a level boundary was crossed.

    When several levels are crossed at once only the final level is reported,
    so the caller notifies exactly once per award.
    """
    require_non_negative("amount", amount)

    new_xp = state.xp + amount
    new_level = level_for_xp(new_xp)
    leveled_up = new_level > state.level
    return ExperienceState(xp=new_xp, level=new_level), leveled_up, new_level
