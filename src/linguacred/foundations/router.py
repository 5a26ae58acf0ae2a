"""Foundation module endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.auth.dependencies import get_current_user
from linguacred.clock import Clock
from linguacred.database import atomic
from linguacred.db.models import User
from linguacred.dependencies import get_clock, get_db, get_redis_dep, get_reward_table
from linguacred.foundations.foundation_service import (
    check_feature_access,
    get_foundation_progress,
    get_module,
    get_module_progress,
    list_modules,
    submit_quiz_attempt,
    update_module_progress,
)
from linguacred.foundations.schemas import (
    FeatureAccessResponse,
    FoundationModuleResponse,
    FoundationProgressResponse,
    ModuleDetailResponse,
    ModuleListResponse,
    ModuleProgressResponse,
    QuizAttemptRequest,
    QuizAttemptResponse,
    UpdateProgressRequest,
)
from linguacred.gamification.reward_tables import RewardTable

router = APIRouter(prefix="/api/v1/foundations", tags=["Foundations"])


@router.get("/progress", response_model=FoundationProgressResponse)
async def get_my_foundation_progress(
    language: str | None = Query(None, max_length=32),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FoundationProgressResponse:
    """Modules of a language with the user's progress through them."""
    fp = await get_foundation_progress(db, user.id, language)
    return FoundationProgressResponse(
        language=fp.language,
        modules=[FoundationModuleResponse.model_validate(m) for m in fp.modules],
        progress=[ModuleProgressResponse.model_validate(p) for p in fp.progress],
        total_modules=fp.total_modules,
        completed_modules=fp.completed_modules,
        overall_progress=fp.overall_progress,
    )


@router.get("/access", response_model=FeatureAccessResponse)
async def get_feature_access(
    language: str | None = Query(None, max_length=32),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> FeatureAccessResponse:
    """Whether the foundations of the language are complete."""
    access = await check_feature_access(db, user.id, language)
    return FeatureAccessResponse(
        language=access.language,
        has_access=access.has_access,
        completed_modules=access.completed_modules,
        total_modules=access.total_modules,
        percentage=access.percentage,
    )


@router.post("/modules/{module_id}/progress", response_model=ModuleProgressResponse)
async def post_module_progress(
    module_id: int,
    body: UpdateProgressRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    clock: Clock = Depends(get_clock),
    rewards: RewardTable = Depends(get_reward_table),
) -> ModuleProgressResponse:
    async with atomic(db, redis):
        progress = await update_module_progress(
            db,
            user.id,
            module_id,
            status=body.status,
            progress_percent=body.progress_percent,
            time_spent=body.time_spent,
            best_score=body.best_score,
            clock=clock,
            rewards=rewards,
        )
    return ModuleProgressResponse.model_validate(progress)


@router.post("/modules/{module_id}/quiz", response_model=QuizAttemptResponse)
async def post_quiz_attempt(
    module_id: int,
    body: QuizAttemptRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    clock: Clock = Depends(get_clock),
    rewards: RewardTable = Depends(get_reward_table),
) -> QuizAttemptResponse:
    """Submit a quiz; passing completes the module and pays its reward once."""
    async with atomic(db, redis):
        result = await submit_quiz_attempt(
            db,
            user.id,
            module_id,
            body.score,
            body.total_questions,
            body.correct_answers,
            body.time_spent,
            body.answers,
            clock=clock,
            rewards=rewards,
        )
    return QuizAttemptResponse(
        attempt_id=result.attempt.id,
        passed=result.passed,
        credits_awarded=result.credits_awarded,
        milestones=[m.milestone_type.value for m in result.milestones],
    )


@router.get("/{language}/modules", response_model=ModuleListResponse)
async def get_language_modules(
    language: str,
    db: AsyncSession = Depends(get_db),
) -> ModuleListResponse:
    modules = await list_modules(db, language)
    return ModuleListResponse(modules=[FoundationModuleResponse.model_validate(m) for m in modules])


@router.get("/{language}/{module_type}", response_model=ModuleDetailResponse)
async def get_module_detail(
    language: str,
    module_type: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ModuleDetailResponse:
    module = await get_module(db, language, module_type)
    progress = await get_module_progress(db, user.id, module.id)
    return ModuleDetailResponse(
        module=FoundationModuleResponse.model_validate(module),
        progress=ModuleProgressResponse.model_validate(progress) if progress else None,
    )
