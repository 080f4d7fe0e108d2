"""Shop tests — spending and cosmetic unlock rules."""

import pytest

from bibleeido.errors import EconomyValidationError
from bibleeido.gamification.shop import Cosmetic, UnlockType, Wallet, purchase_cosmetic, spend


class TestSpend:
    def test_covered(self):
        assert spend(30, 20) == (10, True)

    def test_short(self):
        assert spend(15, 20) == (15, False)

    def test_negative_amount_rejected(self):
        with pytest.raises(EconomyValidationError):
            spend(10, -1)


class TestPurchaseCosmetic:
    """Unlock requirements by unlock type."""

    def test_coins_deducted(self, cosmetics):
        result = purchase_cosmetic(cosmetics[0], Wallet(coins=150, gems=2), level=1, owned_ids=set())
        assert result.success is True
        assert result.wallet == Wallet(coins=50, gems=2)

    def test_not_enough_gems(self, cosmetics):
        wallet = Wallet(coins=500, gems=4)
        result = purchase_cosmetic(cosmetics[1], wallet, level=1, owned_ids=set())
        assert result.success is False
        assert result.reason == "not_enough_gems"
        assert result.wallet == wallet

    def test_level_requirement(self, cosmetics):
        assert purchase_cosmetic(cosmetics[2], Wallet(), level=2, owned_ids=set()).success is False
        result = purchase_cosmetic(cosmetics[2], Wallet(coins=5), level=3, owned_ids=set())
        assert result.success is True
        assert result.wallet == Wallet(coins=5)

    def test_already_owned(self, cosmetics):
        result = purchase_cosmetic(cosmetics[0], Wallet(coins=500), level=1, owned_ids={"frame_gold"})
        assert result.success is False
        assert result.reason == "already_owned"

    def test_free_cosmetic(self):
        free = Cosmetic(id="halo", unlock_type=UnlockType.FREE)
        assert purchase_cosmetic(free, Wallet(), level=1, owned_ids=set()).success is True
