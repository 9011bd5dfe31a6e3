"""
Tests for Rewards Store
"""

import asyncio
import pytest
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bloom_engine.ledger import ActionType, GamificationLedger
from bloom_engine.rewards import RewardStore


class TestRewardStore:
    """Test cases for RewardStore.purchase_reward."""

    @pytest.fixture
    def ledger(self):
        return GamificationLedger()

    @pytest.fixture
    def store(self, ledger):
        return RewardStore(ledger)

    def test_catalog(self, store):
        ids = [r.id for r in store.get_rewards()]

        assert len(ids) == 9
        assert "theme-ocean" in ids

    def test_purchase(self, store, ledger):
        result = asyncio.run(store.purchase_reward("user_1", "theme-ocean", 200))

        assert result.success
        assert result.message == "Unlocked Ocean Theme!"
        assert result.remaining_xp == 50
        assert store.owned("user_1") == {"theme-ocean"}

        debit = ledger.get_history("user_1")[0]
        assert debit.type == ActionType.PURCHASE
        assert debit.xp == -150

    def test_already_unlocked(self, store):
        async def buy_twice():
            first = await store.purchase_reward("user_1", "theme-ocean", 400)
            return await store.purchase_reward("user_1", "theme-ocean", first.remaining_xp)

        result = asyncio.run(buy_twice())

        assert not result.success
        assert result.message == "Already unlocked"
        assert result.remaining_xp == 250

    def test_not_enough_xp(self, store, ledger):
        result = asyncio.run(store.purchase_reward("user_1", "badge-zen", 999))

        assert not result.success
        assert result.message == "Not enough XP"
        assert result.remaining_xp == 999
        assert ledger.get_history("user_1") == []

    def test_unknown_reward(self, store):
        result = asyncio.run(store.purchase_reward("user_1", "theme-space", 5000))

        assert not result.success
        assert result.message == "Reward not found"

    def test_ownership_is_per_user(self, store):
        async def buy():
            await store.purchase_reward("user_1", "sound-chimes", 500)
            return await store.purchase_reward("user_2", "sound-chimes", 500)

        result = asyncio.run(buy())

        assert result.success
        assert store.owned("user_2") == {"sound-chimes"}

    def test_concurrent_purchases_charge_once(self, store, ledger):
        async def race():
            return await asyncio.gather(
                store.purchase_reward("user_1", "theme-forest", 300),
                store.purchase_reward("user_1", "theme-forest", 300),
            )

        results = asyncio.run(race())

        assert [r.success for r in results].count(True) == 1
        assert len(ledger.get_history("user_1")) == 1
