"""Conversation session endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.auth.dependencies import get_current_user
from linguacred.clock import Clock
from linguacred.config import Settings
from linguacred.conversations.conversation_service import (
    end_conversation,
    get_conversation_stats,
    list_conversations,
    start_conversation,
)
from linguacred.conversations.schemas import (
    AwardedMilestone,
    ConversationListResponse,
    ConversationResponse,
    ConversationStatsResponse,
    EndConversationRequest,
    EndConversationResponse,
    StartConversationRequest,
    StartConversationResponse,
)
from linguacred.credits.ledger_service import get_balance
from linguacred.database import atomic
from linguacred.db.models import User
from linguacred.dependencies import (
    get_clock,
    get_db,
    get_redis_dep,
    get_reward_table,
    get_settings_dep,
)
from linguacred.gamification.reward_tables import RewardTable

router = APIRouter(prefix="/api/v1/conversations", tags=["Conversations"])


@router.post("", response_model=StartConversationResponse, status_code=201)
async def start_session(
    body: StartConversationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    settings: Settings = Depends(get_settings_dep),
    clock: Clock = Depends(get_clock),
) -> StartConversationResponse:
    """Start a paid conversation session."""
    async with atomic(db, redis):
        session = await start_conversation(
            db, user.id, body.language, body.topic, settings=settings, clock=clock
        )
        credits = await get_balance(db, user.id)
    return StartConversationResponse(
        session=ConversationResponse.model_validate(session), credits=credits
    )


@router.post("/{session_id}/end", response_model=EndConversationResponse)
async def end_session(
    session_id: int,
    body: EndConversationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    clock: Clock = Depends(get_clock),
    rewards: RewardTable = Depends(get_reward_table),
) -> EndConversationResponse:
    """End a session and record the learning activity."""
    async with atomic(db, redis):
        result = await end_conversation(
            db,
            user.id,
            session_id,
            body.duration_seconds,
            body.quality,
            body.feedback,
            clock=clock,
            rewards=rewards,
        )
    return EndConversationResponse(
        session=ConversationResponse.model_validate(result.session),
        current_streak=result.activity.streak.current_streak,
        milestones=[
            AwardedMilestone(
                milestone_type=m.milestone_type.value,
                credits_awarded=m.credits_awarded,
                message=m.message,
            )
            for m in result.milestones
        ],
    )


@router.get("", response_model=ConversationListResponse)
async def list_sessions(
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ConversationListResponse:
    rows = await list_conversations(db, user.id, limit=limit)
    return ConversationListResponse(sessions=[ConversationResponse.model_validate(r) for r in rows])


@router.get("/stats", response_model=ConversationStatsResponse)
async def session_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ConversationStatsResponse:
    stats = await get_conversation_stats(db, user.id, clock=clock)
    return ConversationStatsResponse(
        total_sessions=stats.total_sessions,
        total_duration=stats.total_duration,
        total_credits_used=stats.total_credits_used,
        average_quality=stats.average_quality,
        this_week_sessions=stats.this_week_sessions,
    )
