"""Pydantic response models for activity, streak and reward endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# --- Activity ---


class ActivityRequest(BaseModel):
    conversations: int = Field(default=0, ge=0)
    module_progress: int = Field(default=0, ge=0)
    time_spent: int = Field(default=0, ge=0)


class DailyActivityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    activity_date: date
    has_activity: bool
    conversation_count: int
    module_progress_count: int
    time_spent_seconds: int
    credits_earned: int


class StreakTierResponse(BaseModel):
    days: int
    credits: int


class RecordActivityResponse(BaseModel):
    activity: DailyActivityResponse
    current_streak: int
    longest_streak: int
    rewards_granted: list[StreakTierResponse] = []


# --- Streak ---


class StreakRewardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    streak_days: int
    credits_awarded: int
    awarded_at: datetime


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None
    activities: list[DailyActivityResponse] = []
    streak_rewards: list[StreakRewardResponse] = []
    next_reward: StreakTierResponse | None = None


class CalendarDayResponse(BaseModel):
    day: date
    has_activity: bool
    activity: DailyActivityResponse | None = None


class StreakCalendarResponse(BaseModel):
    year: int
    month: int
    days: list[CalendarDayResponse]
    total_active_days: int


# --- Milestones & achievements ---


class MilestoneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    milestone_type: str
    language: str
    milestone: str
    achieved: bool
    achieved_at: datetime | None = None
    credits_awarded: int
    milestone_metadata: dict[str, Any] | None = Field(default=None, serialization_alias="metadata")


class MilestoneListResponse(BaseModel):
    milestones: list[MilestoneResponse]


class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    achievement_type: str
    title: str
    description: str
    badge_icon: str
    badge_color: str
    credits_awarded: int
    unlocked_at: datetime


class AchievementListResponse(BaseModel):
    achievements: list[AchievementResponse]


# --- Progress summary ---


class ProgressStatistics(BaseModel):
    overall_progress: int
    total_modules: int
    completed_modules: int
    weekly_conversations: int
    weekly_milestones: int
    total_milestones: int
    total_achievements: int
    total_credits_earned: int


class ProgressResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_activity_date: date | None = None
    milestones: list[MilestoneResponse]
    achievements: list[AchievementResponse]
    statistics: ProgressStatistics
