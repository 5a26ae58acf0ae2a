"""Pydantic request/response models for conversation endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from linguacred.db.models import ConversationStatus


class StartConversationRequest(BaseModel):
    language: str = Field(default="english", min_length=1, max_length=32)
    topic: str | None = Field(default=None, max_length=256)


class EndConversationRequest(BaseModel):
    duration_seconds: int | None = Field(default=None, ge=0)
    quality: int | None = Field(default=None, ge=1, le=5)
    feedback: str | None = Field(default=None, max_length=4000)


class ConversationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    agent_id: str
    language: str
    topic: str | None = None
    status: ConversationStatus
    credits_used: int
    duration_seconds: int | None = None
    quality: int | None = None
    feedback: str | None = None
    created_at: datetime
    ended_at: datetime | None = None


class StartConversationResponse(BaseModel):
    session: ConversationResponse
    credits: int


class AwardedMilestone(BaseModel):
    milestone_type: str
    credits_awarded: int
    message: str


class EndConversationResponse(BaseModel):
    session: ConversationResponse
    current_streak: int
    milestones: list[AwardedMilestone] = []


class ConversationListResponse(BaseModel):
    sessions: list[ConversationResponse]


class ConversationStatsResponse(BaseModel):
    total_sessions: int
    total_duration: int
    total_credits_used: int
    average_quality: float
    this_week_sessions: int
