"""Daily activity, streak recomputation and streak reward tiers."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from linguacred.clock import FixedClock
from linguacred.credits.ledger_service import audit_balance, get_balance
from linguacred.database import atomic
from linguacred.gamification.achievement_service import has_achievement, list_achievements
from linguacred.gamification.activity_service import ActivityDelta, list_activity, record_activity
from linguacred.gamification.reward_tables import RewardTable, StreakTier
from linguacred.gamification.streak_rewards import check_streak_rewards, list_streak_rewards
from linguacred.gamification.streak_service import (
    get_streak_calendar,
    get_streak_overview,
    get_streak_state,
    recompute_streak,
)

TODAY = date(2026, 3, 10)


async def _active_days(db, user_id: int, clock, days_ago: list[int], **kwargs):
    """Record one activity on each ``TODAY - n`` (oldest first)."""
    summary = None
    async with atomic(db, kwargs.pop("redis", None)):
        for n in sorted(days_ago, reverse=True):
            result = await record_activity(
                db, user_id, ActivityDelta(time_spent=60),
                clock=clock, activity_date=TODAY - timedelta(days=n), **kwargs,
            )
            summary = result.streak
    return summary


class TestRecordActivity:
    @pytest.mark.asyncio
    async def test_counters_accumulate_on_one_row(self, db, user, clock):
        async with atomic(db):
            await record_activity(db, user.id, ActivityDelta(conversations=1, time_spent=120), clock=clock)
            result = await record_activity(
                db, user.id, ActivityDelta(module_progress=2, time_spent=30, credits_earned=5), clock=clock
            )

        activity = result.activity
        assert activity.activity_date == TODAY
        assert activity.has_activity is True
        assert activity.conversation_count == 1
        assert activity.module_progress_count == 2
        assert activity.time_spent_seconds == 150
        assert activity.credits_earned == 5
        assert len(await list_activity(db, user.id, TODAY, TODAY)) == 1

    @pytest.mark.asyncio
    async def test_empty_delta_still_marks_the_day(self, db, user, clock):
        async with atomic(db):
            result = await record_activity(db, user.id, clock=clock)

        assert result.activity.has_activity is True
        assert result.activity.conversation_count == 0
        assert result.streak.current_streak == 1

    @pytest.mark.asyncio
    async def test_instant_is_mapped_to_canonical_day(self, db, user):
        kathmandu = FixedClock(datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc), "Asia/Kathmandu")
        late_evening_utc = datetime(2026, 3, 9, 20, 0, tzinfo=timezone.utc)

        async with atomic(db):
            result = await record_activity(db, user.id, clock=kathmandu, activity_date=late_evening_utc)

        assert result.activity.activity_date == date(2026, 3, 10)

    def test_negative_delta_rejected(self):
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            ActivityDelta(conversations=-1)


class TestStreakComputation:
    @pytest.mark.asyncio
    async def test_three_consecutive_days_pay_first_tier_once(self, db, user, clock):
        summary = await _active_days(db, user.id, clock, [2, 1, 0])

        assert summary.current_streak == 3
        assert summary.longest_streak == 3
        assert summary.last_activity_date == TODAY
        assert summary.rewards_granted == [StreakTier(3, 25)]
        assert await get_balance(db, user.id) == 25

        async with atomic(db):
            again = await recompute_streak(db, user.id, clock=clock)
        assert again.current_streak == 3
        assert again.rewards_granted == []
        assert await get_balance(db, user.id) == 25
        assert (await audit_balance(db, user.id)).consistent

    @pytest.mark.asyncio
    async def test_gap_restarts_the_run(self, db, user, clock):
        summary = await _active_days(db, user.id, clock, [3, 0])

        assert summary.current_streak == 1
        assert summary.longest_streak == 1
        assert summary.rewards_granted == []

    @pytest.mark.asyncio
    async def test_yesterday_keeps_the_streak_alive(self, db, user, clock):
        summary = await _active_days(db, user.id, clock, [2, 1])
        assert summary.current_streak == 2

    @pytest.mark.asyncio
    async def test_streak_breaks_but_longest_is_kept(self, db, user, clock):
        await _active_days(db, user.id, clock, [2, 1, 0])

        clock.advance(days=3)
        async with atomic(db):
            summary = await recompute_streak(db, user.id, clock=clock)

        assert summary.current_streak == 0
        assert summary.longest_streak == 3
        state = await get_streak_state(db, user.id)
        assert state.current_streak == 0
        assert state.longest_streak == 3
        assert state.longest_streak >= state.current_streak

    @pytest.mark.asyncio
    async def test_rebuilding_a_streak_does_not_repay_tiers(self, db, user, clock):
        await _active_days(db, user.id, clock, [2, 1, 0])

        clock.advance(days=10)
        summary = await _active_days(db, user.id, clock, [-8, -9, -10])

        assert summary.current_streak == 3
        assert summary.rewards_granted == []
        assert await get_balance(db, user.id) == 25

    @pytest.mark.asyncio
    async def test_no_activity_gives_zero(self, db, user, clock):
        async with atomic(db):
            summary = await recompute_streak(db, user.id, clock=clock)

        assert summary.current_streak == 0
        assert summary.longest_streak == 0
        assert summary.last_activity_date is None

    @pytest.mark.asyncio
    async def test_streak_events_published_after_commit(self, db, user, clock):
        redis = AsyncMock()
        await _active_days(db, user.id, clock, [2, 1, 0], redis=redis)

        channels = [call.args[0] for call in redis.publish.await_args_list]
        assert "pubsub:streak_update" in channels
        assert "pubsub:streak_reward" in channels
        assert "pubsub:balance_update" in channels
        redis.delete.assert_awaited_with(f"balance:{user.id}")

    @pytest.mark.asyncio
    async def test_nothing_published_on_rollback(self, db, user, clock):
        redis = AsyncMock()
        with pytest.raises(RuntimeError):
            async with atomic(db, redis):
                await record_activity(db, user.id, clock=clock)
                raise RuntimeError("abort")

        redis.publish.assert_not_awaited()
        assert await get_streak_state(db, user.id) is None


class TestStreakRewards:
    @pytest.mark.asyncio
    async def test_fifteen_days_unlocks_badge_without_extra_credits(self, db, user, clock):
        summary = await _active_days(db, user.id, clock, list(range(15)))

        assert summary.current_streak == 15
        paid = [r.streak_days for r in await list_streak_rewards(db, user.id)]
        assert paid == [3, 7, 15]
        assert await get_balance(db, user.id) == 25 + 50 + 100

        assert await has_achievement(db, user.id, "STREAK_15")
        [badge] = await list_achievements(db, user.id)
        assert badge.credits_awarded == 0
        assert badge.title == "15-Day Streak Master"
        assert badge.badge_color == "blue"

    @pytest.mark.asyncio
    async def test_direct_check_is_idempotent(self, db, user):
        async with atomic(db):
            first = await check_streak_rewards(db, user.id, 7)
        async with atomic(db):
            second = await check_streak_rewards(db, user.id, 7)

        assert first == [StreakTier(3, 25), StreakTier(7, 50)]
        assert second == []
        assert await get_balance(db, user.id) == 75

    @pytest.mark.asyncio
    async def test_below_first_tier_pays_nothing(self, db, user):
        async with atomic(db):
            assert await check_streak_rewards(db, user.id, 2) == []
        assert await get_balance(db, user.id) == 0

    @pytest.mark.asyncio
    async def test_custom_reward_table(self, db, user, clock):
        table = RewardTable.from_pairs([(2, 10), (4, 30)], achievement_min_streak_days=4)

        summary = await _active_days(db, user.id, clock, [1, 0], rewards=table)

        assert summary.rewards_granted == [StreakTier(2, 10)]
        assert await get_balance(db, user.id) == 10
        assert await list_achievements(db, user.id) == []


class TestStreakViews:
    @pytest.mark.asyncio
    async def test_overview(self, db, user, clock):
        await _active_days(db, user.id, clock, [2, 1, 0])

        overview = await get_streak_overview(db, user.id, clock=clock)

        assert overview.current_streak == 3
        assert overview.longest_streak == 3
        assert [a.activity_date for a in overview.activities] == [
            TODAY - timedelta(days=2), TODAY - timedelta(days=1), TODAY,
        ]
        assert [r.streak_days for r in overview.streak_rewards] == [3]
        assert overview.next_tier == StreakTier(7, 50)

    @pytest.mark.asyncio
    async def test_overview_reports_lapsed_streak_as_zero(self, db, user, clock):
        await _active_days(db, user.id, clock, [4, 3, 2, 1, 0])
        clock.advance(days=10)

        overview = await get_streak_overview(db, user.id, clock=clock)

        assert overview.current_streak == 0
        assert overview.longest_streak == 5
        assert overview.last_activity_date == TODAY
        assert overview.next_tier == StreakTier(3, 25)

    @pytest.mark.asyncio
    async def test_overview_keeps_streak_within_grace_day(self, db, user, clock):
        await _active_days(db, user.id, clock, [4, 3, 2, 1, 0])
        clock.advance(days=1)

        overview = await get_streak_overview(db, user.id, clock=clock)

        assert overview.current_streak == 5
        assert overview.next_tier == StreakTier(7, 50)

    @pytest.mark.asyncio
    async def test_overview_without_history(self, db, user, clock):
        overview = await get_streak_overview(db, user.id, clock=clock)

        assert overview.current_streak == 0
        assert overview.activities == []
        assert overview.next_tier == StreakTier(3, 25)

    @pytest.mark.asyncio
    async def test_calendar_month(self, db, user, clock):
        await _active_days(db, user.id, clock, [9, 1, 0])

        cal = await get_streak_calendar(db, user.id, 2026, 3)

        assert len(cal.days) == 31
        assert cal.total_active_days == 3
        active = [d.day for d in cal.days if d.has_activity]
        assert active == [date(2026, 3, 1), date(2026, 3, 9), date(2026, 3, 10)]
        assert cal.days[9].activity.time_spent_seconds == 60

    @pytest.mark.asyncio
    async def test_calendar_other_month_is_empty(self, db, user, clock):
        await _active_days(db, user.id, clock, [0])

        cal = await get_streak_calendar(db, user.id, 2026, 2)

        assert len(cal.days) == 28
        assert cal.total_active_days == 0
