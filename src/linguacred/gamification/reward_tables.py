"""Reward tables: streak tiers and learning milestones.

The milestone set is a closed enum and ``RewardTable`` refuses to build unless
every member has a reward, so looking up a ``MilestoneType`` cannot miss.
Only free-form strings coming from callers can be unknown, and
``parse_milestone_type`` rejects those before anything is written.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType

from linguacred.errors import UnknownMilestoneError


class MilestoneType(str, enum.Enum):
    FIRST_CONVERSATION = "FIRST_CONVERSATION"
    FIRST_MODULE_COMPLETE = "FIRST_MODULE_COMPLETE"
    WEEK_STREAK_3 = "WEEK_STREAK_3"
    WEEK_STREAK_7 = "WEEK_STREAK_7"
    WEEK_STREAK_30 = "WEEK_STREAK_30"
    CONVERSATION_COUNT_10 = "CONVERSATION_COUNT_10"
    CONVERSATION_COUNT_50 = "CONVERSATION_COUNT_50"
    MODULE_PERFECT_SCORE = "MODULE_PERFECT_SCORE"
    DAILY_GOAL_WEEK = "DAILY_GOAL_WEEK"


@dataclass(frozen=True)
class MilestoneReward:
    credits: int
    message: str


@dataclass(frozen=True, order=True)
class StreakTier:
    days: int
    credits: int


MILESTONE_REWARDS: Mapping[MilestoneType, MilestoneReward] = MappingProxyType({
    MilestoneType.FIRST_CONVERSATION: MilestoneReward(100, "Completed your first conversation!"),
    MilestoneType.FIRST_MODULE_COMPLETE: MilestoneReward(150, "Completed your first foundation module!"),
    MilestoneType.WEEK_STREAK_3: MilestoneReward(75, "Maintained a 3-day learning streak!"),
    MilestoneType.WEEK_STREAK_7: MilestoneReward(200, "Achieved a 7-day learning streak!"),
    MilestoneType.WEEK_STREAK_30: MilestoneReward(500, "Amazing! 30-day learning streak!"),
    MilestoneType.CONVERSATION_COUNT_10: MilestoneReward(150, "Completed 10 conversations!"),
    MilestoneType.CONVERSATION_COUNT_50: MilestoneReward(
        300, "Conversation master! 50 conversations completed!"
    ),
    MilestoneType.MODULE_PERFECT_SCORE: MilestoneReward(100, "Perfect score on a foundation module!"),
    MilestoneType.DAILY_GOAL_WEEK: MilestoneReward(100, "Met daily goals for a full week!"),
})

STREAK_TIERS: tuple[StreakTier, ...] = (
    StreakTier(3, 25),
    StreakTier(7, 50),
    StreakTier(15, 100),
    StreakTier(30, 200),
    StreakTier(60, 400),
    StreakTier(100, 750),
    StreakTier(180, 1500),
    StreakTier(365, 3000),
)

ACHIEVEMENT_MIN_STREAK_DAYS = 15


def parse_milestone_type(value: str | MilestoneType) -> MilestoneType:
    """Resolve a milestone name. Raises UnknownMilestoneError for anything else."""
    if isinstance(value, MilestoneType):
        return value
    try:
        return MilestoneType(value)
    except ValueError:
        raise UnknownMilestoneError(f"Unknown milestone type: {value}") from None


def streak_badge_style(days: int) -> tuple[str, str]:
    """(icon, colour) for a streak achievement badge."""
    if days >= 100:
        return "\U0001f525", "gold"
    if days >= 30:
        return "⚡", "orange"
    return "\U0001f31f", "blue"


@dataclass(frozen=True)
class RewardTable:
    """Injectable reward configuration used by the reward engine."""

    streak_tiers: tuple[StreakTier, ...] = STREAK_TIERS
    milestones: Mapping[MilestoneType, MilestoneReward] = field(
        default_factory=lambda: MILESTONE_REWARDS
    )
    achievement_min_streak_days: int = ACHIEVEMENT_MIN_STREAK_DAYS

    def __post_init__(self) -> None:
        days = [t.days for t in self.streak_tiers]
        if any(d <= 0 for d in days) or any(t.credits <= 0 for t in self.streak_tiers):
            msg = "Streak tiers need positive days and credits"
            raise ValueError(msg)
        if days != sorted(set(days)):
            msg = "Streak tiers must be strictly ascending by days"
            raise ValueError(msg)
        missing = [m.value for m in MilestoneType if m not in self.milestones]
        if missing:
            msg = f"No reward configured for milestones: {', '.join(missing)}"
            raise ValueError(msg)

    @classmethod
    def from_pairs(
        cls,
        tiers: Iterable[tuple[int, int]],
        achievement_min_streak_days: int = ACHIEVEMENT_MIN_STREAK_DAYS,
    ) -> RewardTable:
        return cls(
            streak_tiers=tuple(StreakTier(days, credits) for days, credits in tiers),
            achievement_min_streak_days=achievement_min_streak_days,
        )

    def milestone_reward(self, milestone_type: MilestoneType) -> MilestoneReward:
        return self.milestones[milestone_type]

    def tiers_reached(self, current_streak: int) -> list[StreakTier]:
        return [t for t in self.streak_tiers if t.days <= current_streak]

    def next_tier(self, current_streak: int) -> StreakTier | None:
        for tier in self.streak_tiers:
            if tier.days > current_streak:
                return tier
        return None

    def grants_achievement(self, tier: StreakTier) -> bool:
        return tier.days >= self.achievement_min_streak_days


DEFAULT_REWARD_TABLE = RewardTable()


@lru_cache
def get_reward_table() -> RewardTable:
    """Reward table built from settings (FastAPI dependency)."""
    from linguacred.config import get_settings

    settings = get_settings()
    return RewardTable.from_pairs(
        settings.streak_reward_tiers,
        achievement_min_streak_days=settings.achievement_min_streak_days,
    )
