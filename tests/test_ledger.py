"""
Tests for Gamification Ledger Module

Levels, XP bookkeeping, achievement unlocks and milestones.
"""

import asyncio
import pytest
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bloom_engine.ledger import (
    PROGRESS_CATEGORY,
    Achievement,
    AchievementRule,
    ActionType,
    GamificationLedger,
    XPAction,
    calculate_level,
    check_milestones,
    get_level_progress,
    xp_for_level,
)
from bloom_engine.persistence import InMemoryPersistence


def breathing(action_id=None, xp=10) -> XPAction:
    return XPAction.create(
        ActionType.GAME, xp, "Breathing Dragon",
        metadata={"activity": "breathing"}, action_id=action_id,
    )


class TestLeveling:
    """Test cases for the level formula."""

    def test_thresholds(self):
        assert xp_for_level(2) == 282
        assert xp_for_level(3) == 519
        assert xp_for_level(5) == 1118

    @pytest.mark.parametrize("xp,level", [
        (0, 1), (281, 1), (282, 2), (518, 2), (519, 3), (1118, 5),
    ])
    def test_calculate_level(self, xp, level):
        assert calculate_level(xp) == level

    @pytest.mark.parametrize("level", range(2, 40))
    def test_threshold_starts_level(self, level):
        assert calculate_level(xp_for_level(level)) == level

    def test_progress_always_in_range(self):
        for xp in range(0, 3000, 13):
            assert 0.0 <= get_level_progress(xp).progress <= 100.0

    def test_level_monotonic(self):
        levels = [calculate_level(xp) for xp in range(0, 5000, 37)]

        assert levels == sorted(levels)

    def test_level_progress(self):
        progress = get_level_progress(400)

        assert progress.current_level == 2
        assert progress.xp_for_current_level == 282
        assert progress.xp_for_next_level == 519
        assert progress.xp_to_next_level == 119
        assert progress.progress == pytest.approx(118 / 237 * 100)

    def test_level_progress_level_one(self):
        """Level 1 spans 0-281 XP, so progress is clamped at 0 from below."""
        progress = get_level_progress(0)

        assert progress.current_level == 1
        assert 0.0 <= progress.progress <= 100.0
        assert progress.xp_to_next_level == 282


class TestXPAction:
    def test_negative_xp_rejected(self):
        with pytest.raises(ValueError):
            XPAction.create(ActionType.GAME, -5)

    def test_purchase_may_be_negative(self):
        action = XPAction.create(ActionType.PURCHASE, -100)

        assert action.is_debit

    def test_activity_from_metadata(self):
        assert breathing().activity == "breathing"
        assert XPAction.create(ActionType.CHAT, 5).activity is None


class TestGamificationLedger:
    """Test cases for GamificationLedger.add_xp."""

    @pytest.fixture
    def persistence(self):
        return InMemoryPersistence()

    @pytest.fixture
    def ledger(self, persistence):
        return GamificationLedger(persistence=persistence)

    def test_add_xp_levels_up(self, ledger):
        action = XPAction.create(ActionType.CHALLENGE, 50)

        result = asyncio.run(ledger.add_xp("user_1", 250, action))

        assert result.new_xp == 300
        assert result.old_level == 1
        assert result.new_level == 2
        assert result.level_up

    def test_no_level_up(self, ledger):
        result = asyncio.run(ledger.add_xp("user_1", 0, XPAction.create(ActionType.CHAT, 50)))

        assert result.new_xp == 50
        assert result.new_level == 1
        assert not result.level_up

    def test_duplicate_action_ignored(self, ledger):
        action = XPAction.create(ActionType.GAME, 40, action_id="game-1")

        async def twice():
            first = await ledger.add_xp("user_1", 0, action)
            second = await ledger.add_xp("user_1", first.new_xp, action)
            return first, second

        first, second = asyncio.run(twice())

        assert first.new_xp == 40
        assert second.duplicate
        assert second.new_xp == 40
        assert len(ledger.get_history("user_1")) == 1

    def test_debit_clamped_at_zero(self, ledger):
        debit = XPAction.create(ActionType.PURCHASE, -100)

        result = asyncio.run(ledger.add_xp("user_1", 30, debit))

        assert result.new_xp == 0
        assert result.clamped

    def test_negative_balance_treated_as_zero(self, ledger):
        result = asyncio.run(ledger.add_xp("user_1", -20, XPAction.create(ActionType.CHAT, 5)))

        assert result.new_xp == 5

    def test_first_breath_unlocks_once(self, ledger):
        async def two_sessions():
            first = await ledger.add_xp("user_1", 0, breathing())
            second = await ledger.add_xp("user_1", first.new_xp, breathing())
            return first, second

        first, second = asyncio.run(two_sessions())

        assert [a.id for a in first.unlocked_achievements] == ["first_breath"]
        assert second.unlocked_achievements == []
        assert "first_breath" in ledger.get_unlocked("user_1")

    def test_achievement_reward_not_credited(self, ledger):
        result = asyncio.run(ledger.add_xp("user_1", 0, breathing(xp=10)))

        assert result.unlocked_achievements
        assert result.new_xp == 10

    def test_unlocks_are_per_user(self, ledger):
        async def both():
            await ledger.add_xp("user_1", 0, breathing())
            return await ledger.add_xp("user_2", 0, breathing())

        result = asyncio.run(both())

        assert [a.id for a in result.unlocked_achievements] == ["first_breath"]
        assert "first_breath" not in ledger.get_unlocked("user_3")

    def test_level_and_streak_achievements(self, ledger):
        action = XPAction.create(ActionType.CHALLENGE, 100)

        result = asyncio.run(ledger.add_xp("user_1", 1100, action, streak=7))
        ids = [a.id for a in result.unlocked_achievements]

        assert ids == ["daily_streak_7", "level_5"]

    def test_meditation_counts_by_type(self, ledger):
        async def meditate():
            xp = 0
            result = None
            for _ in range(20):
                result = await ledger.add_xp("user_1", xp, XPAction.create(ActionType.MEDITATION, 1))
                xp = result.new_xp
            return result

        result = asyncio.run(meditate())

        assert "meditation_zen" in [a.id for a in result.unlocked_achievements]

    def test_history_newest_first(self, ledger):
        async def record():
            await ledger.add_xp("user_1", 0, XPAction.create(ActionType.CHAT, 1, action_id="a"))
            await ledger.add_xp("user_1", 1, XPAction.create(ActionType.CHAT, 1, action_id="b"))

        asyncio.run(record())

        assert [a.id for a in ledger.get_history("user_1")] == ["b", "a"]

    def test_activity_count_excludes_debits(self, ledger):
        async def record():
            await ledger.add_xp("user_1", 0, XPAction.create(ActionType.CHAT, 100))
            await ledger.add_xp("user_1", 100, XPAction.create(ActionType.PURCHASE, -50))

        asyncio.run(record())

        assert ledger.activity_count("user_1") == 1

    def test_get_achievements_catalog(self, ledger):
        asyncio.run(ledger.add_xp("user_1", 0, breathing()))

        statuses = {s.achievement.id: s for s in ledger.get_achievements("user_1")}

        assert len(statuses) == 8
        assert statuses["first_breath"].unlocked
        assert not statuses["level_10"].unlocked

    def test_reads_do_not_create_users(self, ledger):
        ledger.get_achievements("ghost")
        ledger.get_unlocked("ghost")
        ledger.get_history("ghost")
        ledger.activity_count("ghost")
        ledger.has_action("ghost", "a1")

        assert "ghost" not in ledger._progress

    def test_has_action(self, ledger):
        asyncio.run(ledger.add_xp("user_1", 0, breathing("a1")))

        assert ledger.has_action("user_1", "a1")
        assert not ledger.has_action("user_1", "a2")
        assert not ledger.has_action("user_2", "a1")

    def test_progress_saved(self, ledger, persistence):
        action = XPAction.create(ActionType.CHAT, 10, action_id="chat-1")

        asyncio.run(ledger.add_xp("user_1", 0, action))
        doc = persistence.documents[("user_1", PROGRESS_CATEGORY, "xp-progress-chat-1.json")]

        assert doc["xp"] == 10
        assert doc["level"] == 1
        assert doc["action"]["type"] == "chat"

    def test_save_failure_does_not_fail_add(self):
        class BrokenPersistence:
            async def save(self, user_id, category, filename, payload):
                raise RuntimeError("offline")

        ledger = GamificationLedger(persistence=BrokenPersistence())
        result = asyncio.run(ledger.add_xp("user_1", 0, XPAction.create(ActionType.CHAT, 10)))

        assert result.new_xp == 10

    def test_rule_for_unknown_achievement(self):
        with pytest.raises(ValueError):
            GamificationLedger(
                achievements=[Achievement("a", "A", "", "", 0)],
                rules=[AchievementRule("b", lambda c: True)],
            )


class TestMilestones:
    def test_none(self):
        assert check_milestones(1, 0, 0) == []

    def test_all(self):
        ids = [m.id for m in check_milestones(10, 30, 50)]

        assert ids == ["level_5", "level_10", "streak_7", "streak_30", "activities_50"]
