"""Daily streak tracking: recomputation from activity history, overview and calendar."""

from __future__ import annotations

import calendar
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.clock import Clock, SystemClock
from linguacred.database import dialect_insert
from linguacred.db.models import DailyActivity, StreakReward, UserStreak
from linguacred.events import queue_event
from linguacred.gamification.reward_tables import DEFAULT_REWARD_TABLE, RewardTable, StreakTier
from linguacred.gamification.streak_rewards import check_streak_rewards, list_streak_rewards
from linguacred.users.service import lock_user

logger = logging.getLogger(__name__)

# Latest activity may be this many days before today without breaking the streak
STREAK_GRACE_DAYS = 1


@dataclass(frozen=True)
class StreakSummary:
    current_streak: int
    longest_streak: int
    last_activity_date: date | None
    rewards_granted: list[StreakTier] = field(default_factory=list)


@dataclass(frozen=True)
class StreakOverview:
    current_streak: int
    longest_streak: int
    last_activity_date: date | None
    activities: list[DailyActivity]
    streak_rewards: list[StreakReward]
    next_tier: StreakTier | None


@dataclass(frozen=True)
class CalendarDay:
    day: date
    has_activity: bool
    activity: DailyActivity | None


@dataclass(frozen=True)
class StreakCalendar:
    year: int
    month: int
    days: list[CalendarDay]
    total_active_days: int


def compute_current_streak(dates_desc: Sequence[date], today: date) -> int:
    """Length of the run of consecutive days ending at the latest activity.

    ``dates_desc`` must be distinct and sorted newest first. The run only
    counts while the latest activity is at most one day before ``today``.
    """
    if not dates_desc:
        return 0
    latest = dates_desc[0]
    if (today - latest).days > STREAK_GRACE_DAYS:
        return 0

    streak = 0
    expected = latest
    for day in dates_desc:
        if day != expected:
            break
        streak += 1
        expected = day - timedelta(days=1)
    return streak


def compute_longest_streak(dates: Iterable[date]) -> int:
    """Longest run of consecutive calendar days anywhere in the history."""
    longest = 0
    run = 0
    previous: date | None = None
    for day in sorted(set(dates)):
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day
    return longest


async def get_streak_state(db: AsyncSession, user_id: int) -> UserStreak | None:
    result = await db.execute(
        select(UserStreak)
        .where(UserStreak.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def effective_current_streak(state: UserStreak | None, today: date) -> int:
    """Stored streak as seen from ``today``: zero once the grace window has lapsed."""
    if state is None or state.last_activity_date is None:
        return 0
    if (today - state.last_activity_date).days > STREAK_GRACE_DAYS:
        return 0
    return state.current_streak


async def recompute_streak(
    db: AsyncSession,
    user_id: int,
    *,
    clock: Clock | None = None,
    rewards: RewardTable = DEFAULT_REWARD_TABLE,
) -> StreakSummary:
    """Recompute current and longest streak from daily activity and pay tiers.

    Deterministic for a fixed history and a fixed ``today``: running it twice
    without new activity persists the same state and grants nothing new.
    """
    clock = clock or SystemClock()
    today = clock.today()

    await lock_user(db, user_id)

    result = await db.execute(
        select(DailyActivity.activity_date)
        .where(
            DailyActivity.user_id == user_id,
            DailyActivity.has_activity.is_(True),
        )
        .order_by(DailyActivity.activity_date.desc())
    )
    dates_desc = list(result.scalars().all())

    current = compute_current_streak(dates_desc, today)
    computed_longest = compute_longest_streak(dates_desc)
    last_activity = dates_desc[0] if dates_desc else None

    previous = await get_streak_state(db, user_id)
    stored_longest = previous.longest_streak if previous else 0
    previous_current = previous.current_streak if previous else 0
    longest = max(stored_longest, computed_longest, current)

    now = datetime.now(timezone.utc)
    stmt = dialect_insert(db, UserStreak).values(
        user_id=user_id,
        current_streak=current,
        longest_streak=longest,
        last_activity_date=last_activity,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id"],
        set_={
            "current_streak": current,
            "longest_streak": longest,
            "last_activity_date": last_activity,
            "updated_at": now,
        },
    )
    await db.execute(stmt)

    if current != previous_current:
        queue_event(db, "pubsub:streak_update", {
            "user_id": user_id,
            "event": "streak_broken" if current < previous_current else "streak_extended",
            "current_streak": current,
            "previous_streak": previous_current,
        })

    granted = await check_streak_rewards(db, user_id, current, rewards=rewards)

    logger.info(
        "Streak for user %d: current=%d longest=%d (granted %d tiers)",
        user_id, current, longest, len(granted),
    )
    return StreakSummary(
        current_streak=current,
        longest_streak=longest,
        last_activity_date=last_activity,
        rewards_granted=granted,
    )


async def get_streak_overview(
    db: AsyncSession,
    user_id: int,
    *,
    clock: Clock | None = None,
    rewards: RewardTable = DEFAULT_REWARD_TABLE,
    history_days: int = 365,
) -> StreakOverview:
    """Streak state plus the last year of activity and the granted rewards."""
    clock = clock or SystemClock()
    today = clock.today()
    state = await get_streak_state(db, user_id)

    result = await db.execute(
        select(DailyActivity)
        .where(
            DailyActivity.user_id == user_id,
            DailyActivity.activity_date >= today - timedelta(days=history_days),
            DailyActivity.activity_date <= today,
        )
        .order_by(DailyActivity.activity_date.asc())
    )
    activities = list(result.scalars().all())
    current = effective_current_streak(state, today)

    return StreakOverview(
        current_streak=current,
        longest_streak=state.longest_streak if state else 0,
        last_activity_date=state.last_activity_date if state else None,
        activities=activities,
        streak_rewards=await list_streak_rewards(db, user_id),
        next_tier=rewards.next_tier(current),
    )


async def get_streak_calendar(
    db: AsyncSession,
    user_id: int,
    year: int,
    month: int,
) -> StreakCalendar:
    """One entry per day of ``month`` (1-12) with that day's activity, if any."""
    days_in_month = calendar.monthrange(year, month)[1]
    first = date(year, month, 1)
    last = date(year, month, days_in_month)

    result = await db.execute(
        select(DailyActivity).where(
            DailyActivity.user_id == user_id,
            DailyActivity.activity_date >= first,
            DailyActivity.activity_date <= last,
            DailyActivity.has_activity.is_(True),
        )
    )
    by_date = {a.activity_date: a for a in result.scalars()}

    days = []
    for offset in range(days_in_month):
        day = first + timedelta(days=offset)
        activity = by_date.get(day)
        days.append(CalendarDay(day=day, has_activity=activity is not None, activity=activity))

    return StreakCalendar(year=year, month=month, days=days, total_active_days=len(by_date))
