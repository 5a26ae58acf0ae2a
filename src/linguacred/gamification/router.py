"""Activity, streak, milestone, achievement and progress endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.auth.dependencies import get_current_user
from linguacred.clock import Clock
from linguacred.database import atomic
from linguacred.db.models import User
from linguacred.dependencies import get_clock, get_db, get_redis_dep, get_reward_table
from linguacred.gamification.achievement_service import list_achievements
from linguacred.gamification.activity_service import ActivityDelta, record_activity
from linguacred.gamification.milestone_service import list_milestones
from linguacred.gamification.reward_tables import RewardTable
from linguacred.gamification.schemas import (
    AchievementListResponse,
    AchievementResponse,
    ActivityRequest,
    CalendarDayResponse,
    DailyActivityResponse,
    MilestoneListResponse,
    MilestoneResponse,
    ProgressResponse,
    ProgressStatistics,
    RecordActivityResponse,
    StreakCalendarResponse,
    StreakResponse,
    StreakRewardResponse,
    StreakTierResponse,
)
from linguacred.gamification.streak_service import get_streak_calendar, get_streak_overview
from linguacred.gamification.summary_service import get_progress_summary

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


@router.post("/activity", response_model=RecordActivityResponse)
async def post_activity(
    body: ActivityRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    clock: Clock = Depends(get_clock),
    rewards: RewardTable = Depends(get_reward_table),
) -> RecordActivityResponse:
    """Record learning activity for today and return the updated streak."""
    delta = ActivityDelta(
        conversations=body.conversations,
        module_progress=body.module_progress,
        time_spent=body.time_spent,
    )
    async with atomic(db, redis):
        result = await record_activity(db, user.id, delta, clock=clock, rewards=rewards)

    return RecordActivityResponse(
        activity=DailyActivityResponse.model_validate(result.activity),
        current_streak=result.streak.current_streak,
        longest_streak=result.streak.longest_streak,
        rewards_granted=[
            StreakTierResponse(days=t.days, credits=t.credits) for t in result.streak.rewards_granted
        ],
    )


@router.get("/streak", response_model=StreakResponse)
async def get_my_streak(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    rewards: RewardTable = Depends(get_reward_table),
) -> StreakResponse:
    """Get streak state, recent activity and granted streak rewards."""
    overview = await get_streak_overview(db, user.id, clock=clock, rewards=rewards)
    nxt = overview.next_tier
    return StreakResponse(
        current_streak=overview.current_streak,
        longest_streak=overview.longest_streak,
        last_activity_date=overview.last_activity_date,
        activities=[DailyActivityResponse.model_validate(a) for a in overview.activities],
        streak_rewards=[StreakRewardResponse.model_validate(r) for r in overview.streak_rewards],
        next_reward=StreakTierResponse(days=nxt.days, credits=nxt.credits) if nxt else None,
    )


@router.get("/streak/calendar", response_model=StreakCalendarResponse)
async def get_my_streak_calendar(
    year: int | None = Query(None, ge=2000, le=9999),
    month: int | None = Query(None, ge=1, le=12),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> StreakCalendarResponse:
    """Get one month of activity; defaults to the current month."""
    today = clock.today()
    cal = await get_streak_calendar(db, user.id, year or today.year, month or today.month)
    return StreakCalendarResponse(
        year=cal.year,
        month=cal.month,
        days=[
            CalendarDayResponse(
                day=d.day,
                has_activity=d.has_activity,
                activity=DailyActivityResponse.model_validate(d.activity) if d.activity else None,
            )
            for d in cal.days
        ],
        total_active_days=cal.total_active_days,
    )


@router.get("/milestones", response_model=MilestoneListResponse)
async def get_my_milestones(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MilestoneListResponse:
    rows = await list_milestones(db, user.id)
    return MilestoneListResponse(milestones=[MilestoneResponse.model_validate(m) for m in rows])


@router.get("/achievements", response_model=AchievementListResponse)
async def get_my_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AchievementListResponse:
    rows = await list_achievements(db, user.id)
    return AchievementListResponse(
        achievements=[AchievementResponse.model_validate(a) for a in rows]
    )


@router.get("/progress", response_model=ProgressResponse)
async def get_my_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ProgressResponse:
    """Get the overall learning progress summary."""
    summary = await get_progress_summary(db, user.id, clock=clock)
    return ProgressResponse(
        current_streak=summary.current_streak,
        longest_streak=summary.longest_streak,
        last_activity_date=summary.last_activity_date,
        milestones=[MilestoneResponse.model_validate(m) for m in summary.milestones],
        achievements=[AchievementResponse.model_validate(a) for a in summary.achievements],
        statistics=ProgressStatistics(
            overall_progress=summary.overall_progress,
            total_modules=summary.total_modules,
            completed_modules=summary.completed_modules,
            weekly_conversations=summary.weekly_conversations,
            weekly_milestones=summary.weekly_milestones,
            total_milestones=summary.total_milestones,
            total_achievements=summary.total_achievements,
            total_credits_earned=summary.total_credits_earned,
        ),
    )
