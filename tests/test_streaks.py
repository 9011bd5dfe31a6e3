"""
Tests for Streak Tracker Module
"""

import asyncio
import pytest
import sys
from datetime import date, timedelta
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bloom_engine.persistence import InMemoryPersistence
from bloom_engine.streaks import (
    STREAK_CATEGORY,
    StreakRecord,
    StreakTracker,
    advance_streak,
    apply_multiplier,
    multiplier_for,
)

DAY_1 = date(2024, 3, 1)


class FakeCalendar:
    def __init__(self, today: date = DAY_1):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def next_day(self, days: int = 1):
        self.today += timedelta(days=days)


class TestAdvanceStreak:
    """Test cases for the pure streak transition."""

    def test_first_activity(self):
        record = advance_streak(StreakRecord(), DAY_1)

        assert record.current_streak == 1
        assert record.longest_streak == 1
        assert record.multiplier == 1.0
        assert record.last_activity_date == DAY_1

    def test_consecutive_days(self):
        record = StreakRecord()
        for offset in range(3):
            record = advance_streak(record, DAY_1 + timedelta(days=offset))

        assert record.current_streak == 3
        assert record.multiplier == pytest.approx(1.3)

    def test_same_day_is_idempotent(self):
        record = advance_streak(StreakRecord(), DAY_1)

        assert advance_streak(record, DAY_1) is record

    def test_seven_consecutive_days(self):
        record = StreakRecord()
        for offset in range(7):
            record = advance_streak(record, DAY_1 + timedelta(days=offset))

        assert record.current_streak == 7
        assert record.longest_streak == 7
        assert record.multiplier == pytest.approx(1.7)

    def test_multiplier_capped(self):
        record = StreakRecord()
        for offset in range(10):
            record = advance_streak(record, DAY_1 + timedelta(days=offset))

        assert record.current_streak == 10
        assert record.multiplier == pytest.approx(1.7)

    def test_gap_resets_but_keeps_longest(self):
        record = StreakRecord(
            current_streak=5, longest_streak=5, last_activity_date=DAY_1, multiplier=1.5
        )

        record = advance_streak(record, DAY_1 + timedelta(days=3))

        assert record.current_streak == 1
        assert record.longest_streak == 5
        assert record.multiplier == 1.0

    def test_clock_backwards_resets(self):
        record = StreakRecord(
            current_streak=2, longest_streak=2, last_activity_date=DAY_1, multiplier=1.2
        )

        record = advance_streak(record, DAY_1 - timedelta(days=1))

        assert record.current_streak == 1

    def test_multiplier_values(self):
        assert multiplier_for(1) == 1.1
        assert multiplier_for(6) == 1.6
        assert multiplier_for(30) == 1.7


class TestApplyMultiplier:
    @pytest.mark.parametrize("base,bonus,multiplier,expected", [
        (50, 0, 1.0, 50),
        (50, 0, 1.3, 65),
        (25, 0, 1.1, 28),   # 27.5 rounds up
        (10, 5, 1.5, 23),   # 22.5 rounds up
        (0, 0, 1.7, 0),
    ])
    def test_rounding(self, base, bonus, multiplier, expected):
        assert apply_multiplier(base, bonus, multiplier) == expected


class TestStreakTracker:
    """Test cases for StreakTracker."""

    @pytest.fixture
    def calendar(self):
        return FakeCalendar()

    @pytest.fixture
    def persistence(self):
        return InMemoryPersistence()

    @pytest.fixture
    def tracker(self, calendar, persistence):
        return StreakTracker(clock=calendar, persistence=persistence)

    def test_unknown_user(self, tracker):
        assert tracker.get_streak("nobody").current_streak == 0
        assert tracker.get_multiplier("nobody") == 1.0

    def test_record_over_days(self, tracker, calendar):
        async def week():
            record = None
            for _ in range(4):
                record = await tracker.record_activity("user_1")
                calendar.next_day()
            return record

        record = asyncio.run(week())

        assert record.current_streak == 4
        assert record.multiplier == pytest.approx(1.4)

    def test_lapsed_multiplier(self, tracker, calendar):
        tracker.load("user_1", StreakRecord(3, 3, DAY_1, 1.3))

        assert tracker.get_multiplier("user_1") == pytest.approx(1.3)
        calendar.next_day()
        assert tracker.get_multiplier("user_1") == pytest.approx(1.3)
        calendar.next_day()
        assert tracker.get_multiplier("user_1") == 1.0

    def test_concurrent_same_day(self, tracker):
        async def burst():
            return await asyncio.gather(
                *(tracker.record_activity("user_1") for _ in range(5))
            )

        records = asyncio.run(burst())

        assert all(r.current_streak == 1 for r in records)
        assert tracker.get_streak("user_1").current_streak == 1

    def test_users_independent(self, tracker, calendar):
        async def run():
            await tracker.record_activity("user_1")
            calendar.next_day()
            await tracker.record_activity("user_1")
            await tracker.record_activity("user_2")

        asyncio.run(run())

        assert tracker.get_streak("user_1").current_streak == 2
        assert tracker.get_streak("user_2").current_streak == 1

    def test_saves_streak_document(self, tracker, persistence):
        asyncio.run(tracker.record_activity("user_1"))

        doc = persistence.documents[("user_1", STREAK_CATEGORY, "streak-user_1.json")]

        assert doc["currentStreak"] == 1
        assert doc["lastActivityDate"] == "2024-03-01"
        assert doc["streakMultiplier"] == 1.0
