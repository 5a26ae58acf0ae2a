"""Reward table validation and lookups."""

import pytest

from linguacred.errors import UnknownMilestoneError
from linguacred.gamification.reward_tables import (
    DEFAULT_REWARD_TABLE,
    MILESTONE_REWARDS,
    MilestoneReward,
    MilestoneType,
    RewardTable,
    StreakTier,
    parse_milestone_type,
    streak_badge_style,
)


class TestStreakTiers:
    def test_default_tiers(self):
        pairs = [(t.days, t.credits) for t in DEFAULT_REWARD_TABLE.streak_tiers]
        assert pairs == [
            (3, 25), (7, 50), (15, 100), (30, 200),
            (60, 400), (100, 750), (180, 1500), (365, 3000),
        ]

    def test_tiers_reached(self):
        assert DEFAULT_REWARD_TABLE.tiers_reached(2) == []
        assert [t.days for t in DEFAULT_REWARD_TABLE.tiers_reached(3)] == [3]
        assert [t.days for t in DEFAULT_REWARD_TABLE.tiers_reached(16)] == [3, 7, 15]

    def test_next_tier(self):
        assert DEFAULT_REWARD_TABLE.next_tier(0) == StreakTier(3, 25)
        assert DEFAULT_REWARD_TABLE.next_tier(7) == StreakTier(15, 100)
        assert DEFAULT_REWARD_TABLE.next_tier(365) is None

    def test_achievement_threshold(self):
        assert not DEFAULT_REWARD_TABLE.grants_achievement(StreakTier(7, 50))
        assert DEFAULT_REWARD_TABLE.grants_achievement(StreakTier(15, 100))

    def test_from_pairs(self):
        table = RewardTable.from_pairs([(2, 10), (5, 20)], achievement_min_streak_days=5)
        assert table.streak_tiers == (StreakTier(2, 10), StreakTier(5, 20))
        assert table.grants_achievement(StreakTier(5, 20))

    def test_rejects_unordered_tiers(self):
        with pytest.raises(ValueError, match="ascending"):
            RewardTable.from_pairs([(7, 50), (3, 25)])

    def test_rejects_duplicate_tiers(self):
        with pytest.raises(ValueError, match="ascending"):
            RewardTable.from_pairs([(3, 25), (3, 30)])

    def test_rejects_non_positive_values(self):
        with pytest.raises(ValueError, match="positive"):
            RewardTable.from_pairs([(0, 25)])
        with pytest.raises(ValueError, match="positive"):
            RewardTable.from_pairs([(3, -5)])


class TestMilestones:
    def test_every_milestone_has_a_reward(self):
        assert set(MILESTONE_REWARDS) == set(MilestoneType)

    def test_reward_amounts(self):
        amounts = {m.value: DEFAULT_REWARD_TABLE.milestone_reward(m).credits for m in MilestoneType}
        assert amounts == {
            "FIRST_CONVERSATION": 100,
            "FIRST_MODULE_COMPLETE": 150,
            "WEEK_STREAK_3": 75,
            "WEEK_STREAK_7": 200,
            "WEEK_STREAK_30": 500,
            "CONVERSATION_COUNT_10": 150,
            "CONVERSATION_COUNT_50": 300,
            "MODULE_PERFECT_SCORE": 100,
            "DAILY_GOAL_WEEK": 100,
        }

    def test_incomplete_milestone_table_is_rejected(self):
        partial = {MilestoneType.FIRST_CONVERSATION: MilestoneReward(100, "hi")}
        with pytest.raises(ValueError, match="No reward configured"):
            RewardTable(milestones=partial)

    def test_parse_known(self):
        assert parse_milestone_type("FIRST_CONVERSATION") is MilestoneType.FIRST_CONVERSATION
        assert parse_milestone_type(MilestoneType.DAILY_GOAL_WEEK) is MilestoneType.DAILY_GOAL_WEEK

    def test_parse_unknown(self):
        with pytest.raises(UnknownMilestoneError) as exc_info:
            parse_milestone_type("FIRST_BLOOD")
        assert exc_info.value.code == "unknown_milestone"
        assert exc_info.value.retryable is False


class TestBadgeStyle:
    @pytest.mark.parametrize(
        ("days", "color"),
        [(15, "blue"), (30, "orange"), (60, "orange"), (100, "gold"), (365, "gold")],
    )
    def test_color_by_tier(self, days, color):
        assert streak_badge_style(days)[1] == color
