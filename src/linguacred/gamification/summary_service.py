"""Progress summary across streaks, milestones, achievements and modules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.clock import Clock, SystemClock
from linguacred.db.models import (
    ConversationSession,
    FoundationModule,
    ModuleProgress,
    ModuleStatus,
    StreakReward,
    UserAchievement,
    UserMilestone,
)
from linguacred.gamification.achievement_service import list_achievements
from linguacred.gamification.milestone_service import list_milestones
from linguacred.gamification.streak_service import effective_current_streak, get_streak_state


@dataclass(frozen=True)
class ProgressSummary:
    current_streak: int
    longest_streak: int
    last_activity_date: date | None
    milestones: list[UserMilestone]
    achievements: list[UserAchievement]
    total_modules: int
    completed_modules: int
    overall_progress: int
    weekly_conversations: int
    weekly_milestones: int
    total_milestones: int
    total_achievements: int
    total_credits_earned: int


def week_start(today: date) -> date:
    """Most recent Sunday on or before ``today``."""
    return today - timedelta(days=(today.weekday() + 1) % 7)


async def get_progress_summary(
    db: AsyncSession,
    user_id: int,
    *,
    clock: Clock | None = None,
) -> ProgressSummary:
    clock = clock or SystemClock()
    today = clock.today()
    start_day = week_start(today)
    since = datetime.combine(start_day, time.min, tzinfo=clock.tz).astimezone(timezone.utc)

    state = await get_streak_state(db, user_id)
    milestones = await list_milestones(db, user_id)
    achievements = await list_achievements(db, user_id)

    total_modules = (
        await db.execute(
            select(func.count()).select_from(FoundationModule).where(FoundationModule.is_active.is_(True))
        )
    ).scalar_one()
    completed_modules = (
        await db.execute(
            select(func.count()).select_from(ModuleProgress).where(
                ModuleProgress.user_id == user_id,
                ModuleProgress.status == ModuleStatus.COMPLETED,
            )
        )
    ).scalar_one()
    weekly_conversations = (
        await db.execute(
            select(func.count()).select_from(ConversationSession).where(
                ConversationSession.user_id == user_id,
                ConversationSession.created_at >= since,
            )
        )
    ).scalar_one()
    streak_credits = (
        await db.execute(
            select(func.coalesce(func.sum(StreakReward.credits_awarded), 0)).where(
                StreakReward.user_id == user_id
            )
        )
    ).scalar_one()

    achieved = [m for m in milestones if m.achieved]
    weekly_milestones = sum(
        1 for m in achieved
        if m.achieved_at is not None and _as_utc(m.achieved_at) >= since
    )
    overall = round(completed_modules / total_modules * 100) if total_modules else 0

    return ProgressSummary(
        current_streak=effective_current_streak(state, today),
        longest_streak=state.longest_streak if state else 0,
        last_activity_date=state.last_activity_date if state else None,
        milestones=milestones,
        achievements=achievements,
        total_modules=total_modules,
        completed_modules=completed_modules,
        overall_progress=overall,
        weekly_conversations=weekly_conversations,
        weekly_milestones=weekly_milestones,
        total_milestones=len(achieved),
        total_achievements=len(achievements),
        total_credits_earned=(
            sum(m.credits_awarded for m in achieved)
            + sum(a.credits_awarded for a in achievements)
            + int(streak_credits)
        ),
    )


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive UTC values
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
