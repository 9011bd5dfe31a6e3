"""
Progression Service

Glue between the streak tracker and the ledger:

activity completed → record streak → multiplier → final XP → ledger
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import asyncio
import logging

from .ledger import (
    ActionType,
    GamificationLedger,
    LevelProgress,
    Milestone,
    XPAction,
    XPResult,
    calculate_level,
    check_milestones,
    get_level_progress,
)
from .streaks import StreakRecord, StreakTracker, apply_multiplier

logger = logging.getLogger(__name__)


@dataclass
class ActivityOutcome:
    """Everything that happened because of one completed activity."""
    streak: StreakRecord
    base_xp: int
    bonus_xp: int
    final_xp: int
    result: XPResult

    @property
    def multiplier(self) -> float:
        return self.streak.multiplier

    def to_dict(self) -> Dict:
        return {
            "streak": self.streak.to_dict(),
            "base_xp": self.base_xp,
            "bonus_xp": self.bonus_xp,
            "final_xp": self.final_xp,
            "result": self.result.to_dict(),
        }


class ProgressionService:
    """Awards XP for completed activities, applying the streak bonus."""

    def __init__(self, streaks: StreakTracker, ledger: GamificationLedger):
        self.streaks = streaks
        self.ledger = ledger
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)  # one per user seen, never pruned

    async def complete_activity(
        self,
        user_id: str,
        current_xp: int,
        action_type: ActionType,
        base_xp: int,
        bonus_xp: int = 0,
        description: str = "",
        activity: Optional[str] = None,
        action_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> ActivityOutcome:
        """
        Record a completed activity.

        Args:
            user_id: Who completed it
            current_xp: XP balance before the award
            action_type: Kind of activity
            base_xp: XP the activity is worth
            bonus_xp: Extra XP (e.g. perfect score)
            description: Human readable label for the history
            activity: Specific activity name used by achievements ("breathing")
            action_id: Stable id for dedup (generated when omitted)
            metadata: Extra details stored on the action
        """
        if base_xp < 0 or bonus_xp < 0:
            raise ValueError("Activity XP must be non-negative")

        async with self._locks[user_id]:
            if action_id and self.ledger.has_action(user_id, action_id):
                logger.warning(f"Activity {action_id} already credited to {user_id}; streak untouched")
                return self._already_credited(user_id, current_xp, base_xp, bonus_xp)
            return await self._credit(
                user_id, current_xp, action_type, base_xp, bonus_xp,
                description, activity, action_id, metadata
            )

    def _already_credited(
        self,
        user_id: str,
        current_xp: int,
        base_xp: int,
        bonus_xp: int
    ) -> ActivityOutcome:
        balance = max(current_xp, 0)
        level = calculate_level(balance)
        return ActivityOutcome(
            streak=self.streaks.get_streak(user_id),
            base_xp=base_xp,
            bonus_xp=bonus_xp,
            final_xp=0,
            result=XPResult(
                new_xp=balance,
                new_level=level,
                level_up=False,
                old_level=level,
                duplicate=True,
            ),
        )

    async def _credit(
        self,
        user_id: str,
        current_xp: int,
        action_type: ActionType,
        base_xp: int,
        bonus_xp: int,
        description: str,
        activity: Optional[str],
        action_id: Optional[str],
        metadata: Optional[Dict[str, Any]]
    ) -> ActivityOutcome:
        streak = await self.streaks.record_activity(user_id)
        final_xp = apply_multiplier(base_xp, bonus_xp, streak.multiplier)

        details = dict(metadata or {})
        details.update({
            "base_xp": base_xp,
            "bonus_xp": bonus_xp,
            "multiplier": streak.multiplier,
        })
        if activity:
            details["activity"] = activity

        action = XPAction.create(
            action_type,
            final_xp,
            description=description,
            metadata=details,
            action_id=action_id,
        )
        result = await self.ledger.add_xp(
            user_id, current_xp, action, streak=streak.current_streak
        )

        return ActivityOutcome(
            streak=streak,
            base_xp=base_xp,
            bonus_xp=bonus_xp,
            final_xp=final_xp,
            result=result,
        )

    @staticmethod
    def level_progress(total_xp: int) -> LevelProgress:
        return get_level_progress(total_xp)

    def milestones(self, user_id: str, total_xp: int) -> List[Milestone]:
        return check_milestones(
            calculate_level(total_xp),
            self.streaks.get_streak(user_id).current_streak,
            self.ledger.activity_count(user_id),
        )
