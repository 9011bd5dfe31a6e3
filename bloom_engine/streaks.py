"""
Streak Tracker Module

Daily activity streaks and the XP multiplier derived from them.

Rules (day resolution, UTC by default):
- same day again      → unchanged (idempotent)
- the very next day   → streak + 1, multiplier 1.0 + 0.1/day, capped at 1.7
- any other gap       → streak restarts at 1, multiplier back to 1.0
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Dict, Optional
import asyncio
import logging
import math

from .models import StreakDocument
from .persistence import Persistence

logger = logging.getLogger(__name__)

STREAK_CATEGORY = "wellness"
MULTIPLIER_STEP = 0.1
BASE_MULTIPLIER = 1.0
MAX_MULTIPLIER = 1.7  # 7 days of 10% bonus


@dataclass(frozen=True)
class StreakRecord:
    """Per-user streak state."""
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: Optional[date] = None
    multiplier: float = BASE_MULTIPLIER

    def to_dict(self) -> Dict:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_activity_date": (
                self.last_activity_date.isoformat() if self.last_activity_date else None
            ),
            "multiplier": self.multiplier,
        }

    def to_document(self, user_id: str) -> StreakDocument:
        return StreakDocument(
            userId=user_id,
            currentStreak=self.current_streak,
            longestStreak=self.longest_streak,
            lastActivityDate=self.last_activity_date,
            streakMultiplier=self.multiplier,
        )


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def multiplier_for(streak: int) -> float:
    """XP multiplier for a streak length."""
    return round(min(BASE_MULTIPLIER + MULTIPLIER_STEP * streak, MAX_MULTIPLIER), 2)


def advance_streak(record: StreakRecord, today: date) -> StreakRecord:
    """
    Apply one activity on `today` to a streak record.

    Returns the same object when nothing changes, so repeated calls on
    one day compare identical.
    """
    if record.last_activity_date is None:
        return StreakRecord(
            current_streak=1,
            longest_streak=max(record.longest_streak, 1),
            last_activity_date=today,
            multiplier=BASE_MULTIPLIER,
        )

    days = (today - record.last_activity_date).days

    if days == 0:
        return record

    if days == 1:
        streak = record.current_streak + 1
        return StreakRecord(
            current_streak=streak,
            longest_streak=max(record.longest_streak, streak),
            last_activity_date=today,
            multiplier=multiplier_for(streak),
        )

    # Gap of two or more days, or the clock went backwards
    return StreakRecord(
        current_streak=1,
        longest_streak=record.longest_streak,
        last_activity_date=today,
        multiplier=BASE_MULTIPLIER,
    )


def apply_multiplier(base_xp: int, bonus_xp: int, multiplier: float) -> int:
    """finalXP = round((base + bonus) × multiplier), halves rounded up."""
    return int(math.floor((base_xp + bonus_xp) * multiplier + 0.5))


class StreakTracker:
    """
    Owns one StreakRecord per user.

    Updates for the same user are serialised with a per-user lock so two
    devices reporting activity at once cannot double-increment a streak.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], date]] = None,
        persistence: Optional[Persistence] = None
    ):
        """
        Args:
            clock: Source of "today" (injectable for tests)
            persistence: Where updated records are written
        """
        self.clock = clock or utc_today
        self.persistence = persistence
        self._records: Dict[str, StreakRecord] = {}
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)  # one per user seen, never pruned

    def load(self, user_id: str, record: StreakRecord):
        """Seed a user's record (e.g. restored from storage)."""
        self._records[user_id] = record

    def get_streak(self, user_id: str) -> StreakRecord:
        return self._records.get(user_id, StreakRecord())

    def get_multiplier(self, user_id: str) -> float:
        """Multiplier that would apply today; a lapsed streak earns no bonus."""
        record = self.get_streak(user_id)
        if record.last_activity_date is None:
            return BASE_MULTIPLIER
        if (self.clock() - record.last_activity_date).days > 1:
            return BASE_MULTIPLIER
        return record.multiplier

    async def record_activity(self, user_id: str) -> StreakRecord:
        """Count today's activity towards the user's streak."""
        async with self._locks[user_id]:
            current = self.get_streak(user_id)
            updated = advance_streak(current, self.clock())
            if updated is current:
                return current

            self._records[user_id] = updated
            if updated.current_streak < current.current_streak:
                logger.info(
                    f"Streak reset for {user_id} "
                    f"(was {current.current_streak}, longest {updated.longest_streak})"
                )
            await self._save(user_id, updated)
            return updated

    async def _save(self, user_id: str, record: StreakRecord):
        if self.persistence is None:
            return
        try:
            await self.persistence.save(
                user_id,
                STREAK_CATEGORY,
                f"streak-{user_id}.json",
                record.to_document(user_id).model_dump(mode="json"),
            )
        except Exception as e:
            logger.warning(f"Error saving streak for {user_id}: {e}")
