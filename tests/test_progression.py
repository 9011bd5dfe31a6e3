"""
Tests for Progression Service

End-to-end: completed activity → streak → multiplier → ledger.
"""

import asyncio
import pytest
import sys
from datetime import date, timedelta
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bloom_engine.ledger import ActionType, GamificationLedger
from bloom_engine.progression import ProgressionService
from bloom_engine.streaks import StreakTracker


class FakeCalendar:
    def __init__(self):
        self.today = date(2024, 3, 1)

    def __call__(self) -> date:
        return self.today


class TestProgressionService:
    """Test cases for ProgressionService.complete_activity."""

    @pytest.fixture
    def calendar(self):
        return FakeCalendar()

    @pytest.fixture
    def service(self, calendar):
        return ProgressionService(StreakTracker(clock=calendar), GamificationLedger())

    def test_first_activity_no_bonus(self, service):
        outcome = asyncio.run(service.complete_activity("user_1", 0, ActionType.GAME, 50))

        assert outcome.streak.current_streak == 1
        assert outcome.multiplier == 1.0
        assert outcome.final_xp == 50
        assert outcome.result.new_xp == 50

    def test_streak_bonus_applied(self, service, calendar):
        async def two_days():
            first = await service.complete_activity("user_1", 0, ActionType.GAME, 50)
            calendar.today += timedelta(days=1)
            return await service.complete_activity(
                "user_1", first.result.new_xp, ActionType.GAME, 40, bonus_xp=10
            )

        outcome = asyncio.run(two_days())

        assert outcome.streak.current_streak == 2
        assert outcome.final_xp == 60  # (40 + 10) × 1.2
        assert outcome.result.new_xp == 110

    def test_activity_feeds_achievements(self, service):
        outcome = asyncio.run(service.complete_activity(
            "user_1", 0, ActionType.GAME, 20, description="Breathing Dragon", activity="breathing"
        ))

        assert [a.id for a in outcome.result.unlocked_achievements] == ["first_breath"]

    def test_metadata_recorded(self, service):
        asyncio.run(service.complete_activity(
            "user_1", 0, ActionType.JOURNAL, 30, activity="gratitude", metadata={"entries": 3}
        ))

        action = service.ledger.get_history("user_1")[0]

        assert action.metadata["entries"] == 3
        assert action.metadata["activity"] == "gratitude"
        assert action.metadata["multiplier"] == 1.0

    def test_repeated_action_id_leaves_streak_alone(self, service, calendar):
        async def same_id_twice():
            first = await service.complete_activity(
                "user_1", 0, ActionType.GAME, 50, action_id="game-1"
            )
            calendar.today += timedelta(days=1)
            return await service.complete_activity(
                "user_1", first.result.new_xp, ActionType.GAME, 50, action_id="game-1"
            )

        outcome = asyncio.run(same_id_twice())

        assert outcome.result.duplicate
        assert outcome.final_xp == 0
        assert outcome.result.new_xp == 50
        assert outcome.streak.current_streak == 1
        assert service.streaks.get_streak("user_1").last_activity_date == date(2024, 3, 1)
        assert len(service.ledger.get_history("user_1")) == 1

    def test_negative_xp_rejected(self, service):
        with pytest.raises(ValueError):
            asyncio.run(service.complete_activity("user_1", 0, ActionType.GAME, -10))

    def test_milestones(self, service, calendar):
        async def week():
            xp = 0
            for _ in range(7):
                outcome = await service.complete_activity("user_1", xp, ActionType.CHALLENGE, 200)
                xp = outcome.result.new_xp
                calendar.today += timedelta(days=1)
            return xp

        xp = asyncio.run(week())
        ids = [m.id for m in service.milestones("user_1", xp)]

        assert "streak_7" in ids
        assert "level_5" in ids

    def test_level_progress(self):
        assert ProgressionService.level_progress(300).current_level == 2
