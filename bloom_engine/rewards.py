"""
Rewards Store

Cosmetic rewards bought with XP. A purchase is recorded on the ledger as
a debit action, and ownership is tracked per user.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set
from enum import Enum
import asyncio
import logging

from .ledger import ActionType, GamificationLedger, XPAction, XPResult

logger = logging.getLogger(__name__)


class RewardType(Enum):
    THEME = "theme"
    AVATAR = "avatar"
    SOUND = "sound"
    BADGE = "badge"
    EFFECT = "effect"


class Rarity(Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


@dataclass(frozen=True)
class Reward:
    id: str
    title: str
    description: str
    icon: str
    cost: int  # XP
    type: RewardType
    rarity: Rarity


REWARDS: Sequence[Reward] = (
    # Themes
    Reward("theme-sunset", "Sunset Theme", "Warm orange and pink gradients", "🌅", 100, RewardType.THEME, Rarity.COMMON),
    Reward("theme-ocean", "Ocean Theme", "Calming blues and teals", "🌊", 150, RewardType.THEME, Rarity.COMMON),
    Reward("theme-forest", "Forest Theme", "Nature greens and browns", "🌲", 200, RewardType.THEME, Rarity.RARE),
    # Avatar effects
    Reward("effect-glitter", "Glitter Effect", "Sparkly avatar particles", "✨", 250, RewardType.EFFECT, Rarity.RARE),
    Reward("effect-rainbow", "Rainbow Aura", "Colorful glow around avatar", "🌈", 500, RewardType.EFFECT, Rarity.EPIC),
    # Sounds
    Reward("sound-chimes", "Chime Pack", "Gentle bell sounds", "🔔", 150, RewardType.SOUND, Rarity.COMMON),
    Reward("sound-nature", "Nature Sounds", "Birds, water, wind", "🐦", 200, RewardType.SOUND, Rarity.COMMON),
    # Badges
    Reward("badge-warrior", "Warrior Badge", "For completing 10 challenges", "⚔️", 300, RewardType.BADGE, Rarity.RARE),
    Reward("badge-zen", "Zen Master Badge", "For 30-day streak", "🧘", 1000, RewardType.BADGE, Rarity.LEGENDARY),
)


@dataclass
class PurchaseResult:
    success: bool
    message: str
    remaining_xp: int
    ledger_result: Optional[XPResult] = None


class RewardStore:
    """Read-only reward catalog plus per-user ownership."""

    def __init__(self, ledger: GamificationLedger, rewards: Sequence[Reward] = REWARDS):
        self.ledger = ledger
        self.catalog: Dict[str, Reward] = {r.id: r for r in rewards}
        self._owned: Dict[str, Set[str]] = defaultdict(set)
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)  # one per user seen, never pruned

    def get_rewards(self) -> List[Reward]:
        return list(self.catalog.values())

    def owned(self, user_id: str) -> Set[str]:
        return set(self._owned[user_id])

    async def purchase_reward(self, user_id: str, reward_id: str, user_xp: int) -> PurchaseResult:
        """Spend XP on a reward; nothing changes unless the purchase succeeds."""
        reward = self.catalog.get(reward_id)
        if reward is None:
            return PurchaseResult(False, "Reward not found", user_xp)

        async with self._locks[user_id]:
            if reward_id in self._owned[user_id]:
                return PurchaseResult(False, "Already unlocked", user_xp)
            if user_xp < reward.cost:
                return PurchaseResult(False, "Not enough XP", user_xp)

            debit = XPAction.create(
                ActionType.PURCHASE,
                -reward.cost,
                description=f"Purchased {reward.title}",
                metadata={"reward_id": reward.id},
                action_id=f"purchase-{user_id}-{reward.id}",
            )
            result = await self.ledger.add_xp(user_id, user_xp, debit)
            if result.duplicate:
                logger.warning(f"Purchase of {reward_id} by {user_id} already on the ledger")
                self._owned[user_id].add(reward_id)
                return PurchaseResult(False, "Already unlocked", user_xp, result)

            self._owned[user_id].add(reward_id)
            logger.info(f"{user_id} unlocked reward {reward_id}")
            return PurchaseResult(
                True,
                f"Unlocked {reward.title}!",
                result.new_xp,
                result,
            )
