"""Daily activity recorder.

Aggregates a user's learning activity into one row per canonical calendar
day and triggers streak recomputation (and with it the streak rewards) in the
same transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.clock import Clock, SystemClock
from linguacred.database import dialect_insert
from linguacred.db.models import DailyActivity
from linguacred.gamification.reward_tables import DEFAULT_REWARD_TABLE, RewardTable
from linguacred.gamification.streak_service import StreakSummary, recompute_streak
from linguacred.users.service import lock_user

logger = logging.getLogger(__name__)


class ActivityDelta(BaseModel):
    """Increments applied to the day's activity row."""

    conversations: int = Field(default=0, ge=0)
    module_progress: int = Field(default=0, ge=0)
    time_spent: int = Field(default=0, ge=0, description="Seconds")
    credits_earned: int = Field(default=0, ge=0)


@dataclass(frozen=True)
class ActivityResult:
    activity: DailyActivity
    streak: StreakSummary


def resolve_activity_date(clock: Clock, activity_date: date | datetime | None) -> date:
    """Map an optional date or instant onto the canonical calendar."""
    if activity_date is None:
        return clock.today()
    if isinstance(activity_date, datetime):
        return clock.local_date(activity_date)
    return activity_date


async def record_activity(
    db: AsyncSession,
    user_id: int,
    delta: ActivityDelta | None = None,
    *,
    clock: Clock | None = None,
    rewards: RewardTable = DEFAULT_REWARD_TABLE,
    activity_date: date | datetime | None = None,
) -> ActivityResult:
    """Add ``delta`` to the user's activity for the day, then recompute the streak.

    Counters only ever grow and ``has_activity`` stays true once set. A
    failure anywhere (including in the reward engine) aborts the caller's
    transaction, so the day row is never left out of sync with the streak.
    """
    delta = delta or ActivityDelta()
    clock = clock or SystemClock()
    day = resolve_activity_date(clock, activity_date)
    now = datetime.now(timezone.utc)

    await lock_user(db, user_id)

    stmt = dialect_insert(db, DailyActivity).values(
        user_id=user_id,
        activity_date=day,
        has_activity=True,
        conversation_count=delta.conversations,
        module_progress_count=delta.module_progress,
        time_spent_seconds=delta.time_spent,
        credits_earned=delta.credits_earned,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "activity_date"],
        set_={
            "has_activity": True,
            "conversation_count": DailyActivity.conversation_count + stmt.excluded.conversation_count,
            "module_progress_count": (
                DailyActivity.module_progress_count + stmt.excluded.module_progress_count
            ),
            "time_spent_seconds": DailyActivity.time_spent_seconds + stmt.excluded.time_spent_seconds,
            "credits_earned": DailyActivity.credits_earned + stmt.excluded.credits_earned,
            "updated_at": now,
        },
    )
    await db.execute(stmt)

    result = await db.execute(
        select(DailyActivity)
        .where(DailyActivity.user_id == user_id, DailyActivity.activity_date == day)
        .execution_options(populate_existing=True)
    )
    activity = result.scalar_one()

    logger.info(
        "Activity for user %d on %s: conversations=%d modules=%d time=%ds",
        user_id, day.isoformat(), activity.conversation_count,
        activity.module_progress_count, activity.time_spent_seconds,
    )

    streak = await recompute_streak(db, user_id, clock=clock, rewards=rewards)
    return ActivityResult(activity=activity, streak=streak)


async def list_activity(
    db: AsyncSession, user_id: int, start: date, end: date
) -> list[DailyActivity]:
    """Activity rows in ``[start, end]``, oldest first."""
    result = await db.execute(
        select(DailyActivity)
        .where(
            DailyActivity.user_id == user_id,
            DailyActivity.activity_date >= start,
            DailyActivity.activity_date <= end,
        )
        .order_by(DailyActivity.activity_date.asc())
    )
    return list(result.scalars().all())
