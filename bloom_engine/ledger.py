"""
Gamification Ledger Module

XP bookkeeping, levels and achievements.

Level formula (kept exactly for compatibility with stored progress):
    xp_for_level(L) = floor(100 × L^1.5)
    level 2 at 282 XP, level 3 at 519 XP, level 5 at 1118 XP, ...

The achievement catalog is shared and read-only; which achievements a
user has unlocked is tracked per user, and an unlock never fires twice.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence
from enum import Enum
import asyncio
import logging
import math
import uuid

from .models import ProgressRecord
from .persistence import Persistence

logger = logging.getLogger(__name__)

PROGRESS_CATEGORY = "progress"


# ── Leveling ────────────────────────────────────────────────────────────

def xp_for_level(level: int) -> int:
    """Total XP at which `level` starts."""
    return int(math.floor(100 * math.pow(level, 1.5)))


def calculate_level(total_xp: int) -> int:
    """Level reached with `total_xp`. Anything below level 2's threshold is level 1."""
    level = 1
    threshold = xp_for_level(level + 1)
    while total_xp >= threshold:
        level += 1
        threshold = xp_for_level(level + 1)
    return level


@dataclass(frozen=True)
class LevelProgress:
    """Derived view of a total XP value."""
    current_level: int
    current_xp: int
    xp_for_current_level: int
    xp_for_next_level: int
    progress: float  # 0 - 100
    xp_to_next_level: int

    def to_dict(self) -> Dict:
        return {
            "current_level": self.current_level,
            "current_xp": self.current_xp,
            "xp_for_current_level": self.xp_for_current_level,
            "xp_for_next_level": self.xp_for_next_level,
            "progress": round(self.progress, 2),
            "xp_to_next_level": self.xp_to_next_level,
        }


def get_level_progress(total_xp: int) -> LevelProgress:
    current_level = calculate_level(total_xp)
    current_floor = xp_for_level(current_level)
    next_floor = xp_for_level(current_level + 1)
    progress = (total_xp - current_floor) / (next_floor - current_floor) * 100

    return LevelProgress(
        current_level=current_level,
        current_xp=total_xp,
        xp_for_current_level=current_floor,
        xp_for_next_level=next_floor,
        progress=max(0.0, min(100.0, progress)),
        xp_to_next_level=max(0, next_floor - total_xp),
    )


# ── Actions ─────────────────────────────────────────────────────────────

class ActionType(Enum):
    """Kinds of XP-bearing actions."""
    GAME = "game"
    CHALLENGE = "challenge"
    CHAT = "chat"
    JOURNAL = "journal"
    MEDITATION = "meditation"
    PURCHASE = "purchase"  # debit: negative xp


@dataclass(frozen=True)
class XPAction:
    """One ledger entry. `id` identifies the logical action for dedup."""
    id: str
    type: ActionType
    xp: int
    description: str
    timestamp: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.xp < 0 and self.type != ActionType.PURCHASE:
            raise ValueError(
                f"Action '{self.id}' has negative XP; only purchase debits may"
            )

    @classmethod
    def create(
        cls,
        action_type: ActionType,
        xp: int,
        description: str = "",
        metadata: Optional[Dict[str, Any]] = None,
        action_id: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> "XPAction":
        return cls(
            id=action_id or uuid.uuid4().hex,
            type=action_type,
            xp=xp,
            description=description,
            timestamp=timestamp or datetime.now(timezone.utc),
            metadata=dict(metadata or {}),
        )

    @property
    def activity(self) -> Optional[str]:
        """Specific activity (e.g. "breathing"), from metadata."""
        return self.metadata.get("activity")

    @property
    def is_debit(self) -> bool:
        return self.xp < 0

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "xp": self.xp,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
        }


# ── Achievements ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Achievement:
    """Catalog entry. Unlock state lives in the ledger, per user."""
    id: str
    title: str
    description: str
    icon: str
    xp_reward: int

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "xp_reward": self.xp_reward,
        }


@dataclass(frozen=True)
class AchievementContext:
    """What an achievement rule may look at."""
    new_xp: int
    new_level: int
    action: XPAction
    type_counts: Dict[str, int]
    activity_counts: Dict[str, int]
    streak: int
    unlocked: FrozenSet[str]


@dataclass(frozen=True)
class AchievementRule:
    achievement_id: str
    predicate: Callable[[AchievementContext], bool]


ACHIEVEMENTS: Sequence[Achievement] = (
    Achievement("first_breath", "First Breath", "Complete your first breathing exercise", "🌬️", 50),
    Achievement("breathing_master", "Breathing Master", "Complete 10 breathing cycles", "🐉", 100),
    Achievement("daily_streak_7", "Week Warrior", "Maintain a 7-day streak", "🔥", 200),
    Achievement("gratitude_pro", "Gratitude Pro", "Complete 5 gratitude exercises", "🙏", 150),
    Achievement("meditation_zen", "Zen Master", "Complete 20 meditation sessions", "🧘", 300),
    Achievement("level_5", "Rising Star", "Reach Level 5", "⭐", 250),
    Achievement("level_10", "Champion", "Reach Level 10", "👑", 500),
    Achievement("community_hero", "Community Hero", "Share 5 stories with the community", "💝", 200),
)

ACHIEVEMENT_RULES: Sequence[AchievementRule] = (
    AchievementRule("first_breath", lambda c: c.activity_counts.get("breathing", 0) >= 1),
    AchievementRule("breathing_master", lambda c: c.activity_counts.get("breathing", 0) >= 10),
    AchievementRule("daily_streak_7", lambda c: c.streak >= 7),
    AchievementRule("gratitude_pro", lambda c: c.activity_counts.get("gratitude", 0) >= 5),
    AchievementRule("meditation_zen", lambda c: c.type_counts.get("meditation", 0) >= 20),
    AchievementRule("level_5", lambda c: c.new_level >= 5),
    AchievementRule("level_10", lambda c: c.new_level >= 10),
    AchievementRule("community_hero", lambda c: c.activity_counts.get("share_story", 0) >= 5),
)


@dataclass(frozen=True)
class AchievementStatus:
    achievement: Achievement
    unlocked_at: Optional[datetime] = None

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None


@dataclass
class XPResult:
    """Outcome of one add_xp call."""
    new_xp: int
    new_level: int
    level_up: bool
    unlocked_achievements: List[Achievement] = field(default_factory=list)
    old_level: int = 1
    duplicate: bool = False  # action id already recorded; nothing changed
    clamped: bool = False    # balance would have gone negative

    def to_dict(self) -> Dict:
        return {
            "new_xp": self.new_xp,
            "new_level": self.new_level,
            "level_up": self.level_up,
            "unlocked_achievements": [a.id for a in self.unlocked_achievements],
            "old_level": self.old_level,
            "duplicate": self.duplicate,
            "clamped": self.clamped,
        }


@dataclass
class UserProgress:
    """Per-user ledger state."""
    history: List[XPAction] = field(default_factory=list)
    action_ids: set = field(default_factory=set)
    unlocked: Dict[str, datetime] = field(default_factory=dict)
    type_counts: Counter = field(default_factory=Counter)
    activity_counts: Counter = field(default_factory=Counter)

    def record(self, action: XPAction):
        self.history.append(action)
        self.action_ids.add(action.id)
        self.type_counts[action.type.value] += 1
        if action.activity:
            self.activity_counts[action.activity] += 1


class GamificationLedger:
    """
    Append-only XP log with level and achievement evaluation.

    The caller owns the user's XP balance and passes it in; the ledger
    records actions, derives levels and unlocks achievements.
    """

    def __init__(
        self,
        achievements: Sequence[Achievement] = ACHIEVEMENTS,
        rules: Sequence[AchievementRule] = ACHIEVEMENT_RULES,
        persistence: Optional[Persistence] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.catalog: Dict[str, Achievement] = {a.id: a for a in achievements}
        for rule in rules:
            if rule.achievement_id not in self.catalog:
                raise ValueError(f"Rule for unknown achievement '{rule.achievement_id}'")
        self.rules = list(rules)
        self.persistence = persistence
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._progress: Dict[str, UserProgress] = defaultdict(UserProgress)
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)  # one per user seen, never pruned

    async def add_xp(
        self,
        user_id: str,
        current_xp: int,
        action: XPAction,
        streak: int = 0
    ) -> XPResult:
        """
        Apply an action to the user's XP balance.

        Args:
            user_id: Owner of the balance
            current_xp: Balance before this action
            action: The action (debits carry negative xp)
            streak: Current daily streak, for streak achievements
        """
        async with self._locks[user_id]:
            progress = self._progress[user_id]

            if current_xp < 0:
                logger.warning(f"Negative XP balance {current_xp} for {user_id}; treating as 0")
                current_xp = 0

            old_level = calculate_level(current_xp)

            if action.id in progress.action_ids:
                logger.warning(f"Duplicate XP action {action.id} for {user_id} ignored")
                return XPResult(
                    new_xp=current_xp,
                    new_level=old_level,
                    level_up=False,
                    old_level=old_level,
                    duplicate=True,
                )

            raw_xp = current_xp + action.xp
            clamped = raw_xp < 0
            if clamped:
                logger.warning(
                    f"Data integrity: action {action.id} would leave {user_id} "
                    f"at {raw_xp} XP; clamped to 0"
                )
            new_xp = max(0, raw_xp)

            progress.record(action)
            new_level = calculate_level(new_xp)
            level_up = new_level > old_level
            if level_up:
                logger.info(f"{user_id} reached level {new_level}")

            unlocked = self._evaluate(progress, new_xp, new_level, action, streak)

            await self._save(user_id, new_xp, new_level, action, unlocked)

            return XPResult(
                new_xp=new_xp,
                new_level=new_level,
                level_up=level_up,
                unlocked_achievements=unlocked,
                old_level=old_level,
                clamped=clamped,
            )

    def _evaluate(
        self,
        progress: UserProgress,
        new_xp: int,
        new_level: int,
        action: XPAction,
        streak: int
    ) -> List[Achievement]:
        context = AchievementContext(
            new_xp=new_xp,
            new_level=new_level,
            action=action,
            type_counts=dict(progress.type_counts),
            activity_counts=dict(progress.activity_counts),
            streak=streak,
            unlocked=frozenset(progress.unlocked),
        )

        unlocked: List[Achievement] = []
        now = self.clock()
        for rule in self.rules:
            if rule.achievement_id in progress.unlocked:
                continue
            if rule.predicate(context):
                progress.unlocked[rule.achievement_id] = now
                unlocked.append(self.catalog[rule.achievement_id])
        return unlocked

    async def _save(
        self,
        user_id: str,
        new_xp: int,
        new_level: int,
        action: XPAction,
        unlocked: List[Achievement]
    ):
        if self.persistence is None:
            return
        record = ProgressRecord(
            userId=user_id,
            xp=new_xp,
            level=new_level,
            action=action.to_dict(),
            unlockedAchievements=[a.id for a in unlocked],
            timestamp=self.clock(),
        )
        try:
            await self.persistence.save(
                user_id,
                PROGRESS_CATEGORY,
                f"xp-progress-{action.id}.json",
                record.model_dump(mode="json"),
            )
        except Exception as e:
            # Continue even if save fails
            logger.warning(f"Error saving XP progress for {user_id}: {e}")

    def _peek(self, user_id: str) -> UserProgress:
        return self._progress.get(user_id) or UserProgress()

    def get_achievements(self, user_id: str) -> List[AchievementStatus]:
        """Full catalog with this user's unlock times."""
        unlocked = self._peek(user_id).unlocked
        return [
            AchievementStatus(achievement, unlocked.get(achievement.id))
            for achievement in self.catalog.values()
        ]

    def has_action(self, user_id: str, action_id: str) -> bool:
        progress = self._progress.get(user_id)
        return progress is not None and action_id in progress.action_ids

    def get_unlocked(self, user_id: str) -> Dict[str, datetime]:
        return dict(self._peek(user_id).unlocked)

    def get_history(self, user_id: str) -> List[XPAction]:
        """Recorded actions, newest first."""
        return list(reversed(self._peek(user_id).history))

    def activity_count(self, user_id: str) -> int:
        """Number of non-debit actions recorded for the user."""
        return sum(1 for a in self._peek(user_id).history if not a.is_debit)


# ── Milestones ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Milestone:
    id: str
    title: str
    description: str
    icon: str
    type: str  # "level", "streak", "activity"


def check_milestones(level: int, streak: int, activity_count: int) -> List[Milestone]:
    """Milestones reached for a progress snapshot (for progress views)."""
    milestones: List[Milestone] = []

    if level >= 5:
        milestones.append(Milestone("level_5", "Rising Star", "Reached Level 5!", "⭐", "level"))
    if level >= 10:
        milestones.append(Milestone("level_10", "Champion", "Reached Level 10!", "👑", "level"))
    if streak >= 7:
        milestones.append(Milestone("streak_7", "Week Warrior", "7-day streak!", "🔥", "streak"))
    if streak >= 30:
        milestones.append(Milestone("streak_30", "Month Master", "30-day streak!", "💪", "streak"))
    if activity_count >= 50:
        milestones.append(
            Milestone("activities_50", "Active Explorer", "50 activities completed!", "🎯", "activity")
        )

    return milestones
