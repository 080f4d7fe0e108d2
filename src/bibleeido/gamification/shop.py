"""Currency spending and cosmetic unlock rules.

A shortfall is an expected outcome and is reported through flags, never
exceptions.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

from bibleeido.errors import require_non_negative


class UnlockType(str, Enum):
    FREE = "free"
    LEVEL = "level"
    COINS = "coins"
    GEMS = "gems"


class Cosmetic(BaseModel):
    id: str
    name: str = ""
    cosmetic_type: str = "frame"
    unlock_type: UnlockType = UnlockType.FREE
    unlock_value: int = Field(default=0, ge=0)


@dataclass(frozen=True)
class Wallet:
    coins: int = 0
    gems: int = 0


@dataclass(frozen=True)
class PurchaseResult:
    success: bool
    wallet: Wallet
    reason: str | None = None


def spend(balance: int, amount: int) -> tuple[int, bool]:
    """Deduct ``amount`` from ``balance`` when it is covered."""
    require_non_negative("amount", amount)
    if balance < amount:
        return balance, False
    return balance - amount, True


def purchase_cosmetic(
    cosmetic: Cosmetic,
    wallet: Wallet,
    level: int,
    owned_ids: Collection[str],
) -> PurchaseResult:
    """Check unlock requirements and charge the wallet for ``cosmetic``."""
    if cosmetic.id in owned_ids:
        return PurchaseResult(False, wallet, "already_owned")

    if cosmetic.unlock_type == UnlockType.LEVEL:
        if level < cosmetic.unlock_value:
            return PurchaseResult(False, wallet, f"level_{cosmetic.unlock_value}_required")
        return PurchaseResult(True, wallet)

    if cosmetic.unlock_type == UnlockType.COINS:
        coins, ok = spend(wallet.coins, cosmetic.unlock_value)
        if not ok:
            return PurchaseResult(False, wallet, "not_enough_coins")
        return PurchaseResult(True, Wallet(coins=coins, gems=wallet.gems))

    if cosmetic.unlock_type == UnlockType.GEMS:
        gems, ok = spend(wallet.gems, cosmetic.unlock_value)
        if not ok:
            return PurchaseResult(False, wallet, "not_enough_gems")
        return PurchaseResult(True, Wallet(coins=wallet.coins, gems=gems))

    return PurchaseResult(True, wallet)
