"""Foundation modules: progress tracking, quizzes and completion rewards."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.clock import Clock, SystemClock
from linguacred.credits.ledger_service import add_credits
from linguacred.db.models import FoundationModule, ModuleProgress, ModuleStatus, QuizAttempt
from linguacred.errors import FoundationModuleNotFoundError, UserNotFoundError
from linguacred.gamification.activity_service import ActivityDelta, record_activity
from linguacred.gamification.milestone_service import MilestoneResult, check_milestone
from linguacred.gamification.reward_tables import DEFAULT_REWARD_TABLE, MilestoneType, RewardTable
from linguacred.users.service import get_user_by_id, lock_user

logger = logging.getLogger(__name__)

PERFECT_SCORE = 100


@dataclass(frozen=True)
class FoundationProgress:
    language: str | None
    modules: list[FoundationModule]
    progress: list[ModuleProgress]
    total_modules: int
    completed_modules: int
    overall_progress: int


@dataclass(frozen=True)
class FeatureAccess:
    language: str | None
    has_access: bool
    completed_modules: int
    total_modules: int
    percentage: int


@dataclass(frozen=True)
class QuizResult:
    attempt: QuizAttempt
    passed: bool
    credits_awarded: int
    milestones: list[MilestoneResult] = field(default_factory=list)


async def list_modules(db: AsyncSession, language: str) -> list[FoundationModule]:
    """Active modules for a language in learning order."""
    result = await db.execute(
        select(FoundationModule)
        .where(
            FoundationModule.language == language.lower(),
            FoundationModule.is_active.is_(True),
        )
        .order_by(FoundationModule.order_index.asc())
    )
    return list(result.scalars().all())


async def get_module(db: AsyncSession, language: str, module_type: str) -> FoundationModule:
    result = await db.execute(
        select(FoundationModule).where(
            FoundationModule.language == language.lower(),
            FoundationModule.module_type == module_type.upper(),
        )
    )
    module = result.scalar_one_or_none()
    if module is None or not module.is_active:
        raise FoundationModuleNotFoundError
    return module


async def _get_active_module(db: AsyncSession, module_id: int) -> FoundationModule:
    module = await db.get(FoundationModule, module_id)
    if module is None or not module.is_active:
        raise FoundationModuleNotFoundError
    return module


async def get_module_progress(
    db: AsyncSession, user_id: int, module_id: int
) -> ModuleProgress | None:
    result = await db.execute(
        select(ModuleProgress)
        .where(ModuleProgress.user_id == user_id, ModuleProgress.module_id == module_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_foundation_progress(
    db: AsyncSession, user_id: int, language: str | None = None
) -> FoundationProgress:
    """Modules and the user's progress for ``language`` (default: the user's selected language)."""
    if language is None:
        user = await get_user_by_id(db, user_id)
        if user is None:
            raise UserNotFoundError
        language = user.selected_language
    if not language:
        return FoundationProgress(None, [], [], 0, 0, 0)

    modules = await list_modules(db, language)
    result = await db.execute(
        select(ModuleProgress).where(
            ModuleProgress.user_id == user_id,
            ModuleProgress.language == language.lower(),
        )
    )
    progress = list(result.scalars().all())
    completed = sum(1 for p in progress if p.status == ModuleStatus.COMPLETED)
    total = len(modules)
    return FoundationProgress(
        language=language.lower(),
        modules=modules,
        progress=progress,
        total_modules=total,
        completed_modules=completed,
        overall_progress=round(completed / total * 100) if total else 0,
    )


async def check_feature_access(
    db: AsyncSession, user_id: int, language: str | None = None
) -> FeatureAccess:
    """Whether every active foundation module of the language is COMPLETED.

    The web app unlocks its main features once the foundations of the
    selected language are done. Without a language there is no access.
    """
    fp = await get_foundation_progress(db, user_id, language)
    active_ids = {m.id for m in fp.modules}
    completed = sum(
        1 for p in fp.progress
        if p.status == ModuleStatus.COMPLETED and p.module_id in active_ids
    )
    total = len(active_ids)
    return FeatureAccess(
        language=fp.language,
        has_access=total > 0 and completed == total,
        completed_modules=completed,
        total_modules=total,
        percentage=round(completed / total * 100) if total else 0,
    )


async def _save_progress(
    db: AsyncSession,
    user_id: int,
    module: FoundationModule,
    *,
    status: ModuleStatus | None,
    progress_percent: int | None,
    time_spent: int,
    score: int | None,
    now: datetime,
) -> ModuleProgress:
    # Caller holds the user lock, so read-modify-write is safe here
    progress = await get_module_progress(db, user_id, module.id)
    if progress is None:
        progress = ModuleProgress(
            user_id=user_id,
            module_id=module.id,
            language=module.language,
            status=ModuleStatus.IN_PROGRESS,
            progress_percent=0,
            time_spent_seconds=0,
            reward_granted=False,
        )
        db.add(progress)

    # COMPLETED is terminal
    if progress.status != ModuleStatus.COMPLETED and status is not None:
        progress.status = status
        if status == ModuleStatus.COMPLETED:
            progress.completed_at = now
    if progress_percent is not None:
        progress.progress_percent = max(progress.progress_percent, progress_percent)
    if score is not None:
        progress.best_score = max(progress.best_score or 0, score)
    progress.time_spent_seconds += time_spent
    progress.last_accessed_at = now
    await db.flush()
    return progress


async def update_module_progress(
    db: AsyncSession,
    user_id: int,
    module_id: int,
    *,
    status: ModuleStatus | None = None,
    progress_percent: int | None = None,
    time_spent: int = 0,
    best_score: int | None = None,
    clock: Clock | None = None,
    rewards: RewardTable = DEFAULT_REWARD_TABLE,
) -> ModuleProgress:
    """Record progress through a module and count it as today's learning activity."""
    clock = clock or SystemClock()
    await lock_user(db, user_id)
    module = await _get_active_module(db, module_id)

    progress = await _save_progress(
        db,
        user_id,
        module,
        status=status,
        progress_percent=progress_percent,
        time_spent=time_spent,
        score=best_score,
        now=clock.now().astimezone(timezone.utc),
    )
    await record_activity(
        db,
        user_id,
        ActivityDelta(module_progress=1, time_spent=time_spent),
        clock=clock,
        rewards=rewards,
    )
    return progress


async def submit_quiz_attempt(
    db: AsyncSession,
    user_id: int,
    module_id: int,
    score: int,
    total_questions: int,
    correct_answers: int,
    time_spent: int = 0,
    answers: list[dict[str, Any]] | None = None,
    *,
    clock: Clock | None = None,
    rewards: RewardTable = DEFAULT_REWARD_TABLE,
) -> QuizResult:
    """Store a quiz attempt; a passing score completes the module.

    The module's credit reward is paid at most once per user and module,
    however many passing attempts follow.
    """
    clock = clock or SystemClock()
    now = clock.now().astimezone(timezone.utc)
    await lock_user(db, user_id)
    module = await _get_active_module(db, module_id)

    passed = score >= module.required_score
    attempt = QuizAttempt(
        user_id=user_id,
        module_id=module.id,
        language=module.language,
        score=score,
        total_questions=total_questions,
        correct_answers=correct_answers,
        time_spent_seconds=time_spent,
        answers=answers or [],
        passed=passed,
        created_at=now,
    )
    db.add(attempt)
    await db.flush()

    credits_awarded = 0
    milestones: list[MilestoneResult] = []
    if passed:
        await _save_progress(
            db,
            user_id,
            module,
            status=ModuleStatus.COMPLETED,
            progress_percent=100,
            time_spent=0,
            score=score,
            now=now,
        )
        latched = await db.execute(
            update(ModuleProgress)
            .where(
                ModuleProgress.user_id == user_id,
                ModuleProgress.module_id == module.id,
                ModuleProgress.reward_granted.is_(False),
            )
            .values(reward_granted=True)
            .returning(ModuleProgress.id)
        )
        if latched.scalar_one_or_none() is not None and module.credits_reward > 0:
            await add_credits(db, user_id, module.credits_reward, f"Module completed: {module.title}")
            credits_awarded = module.credits_reward

    await record_activity(
        db,
        user_id,
        ActivityDelta(time_spent=time_spent, credits_earned=credits_awarded),
        clock=clock,
        rewards=rewards,
    )

    if passed:
        milestones.append(await check_milestone(
            db, user_id, MilestoneType.FIRST_MODULE_COMPLETE, module.language,
            {"module_id": module.id, "module_type": module.module_type}, rewards=rewards,
        ))
        if score >= PERFECT_SCORE:
            milestones.append(await check_milestone(
                db, user_id, MilestoneType.MODULE_PERFECT_SCORE, module.language,
                {"module_id": module.id, "score": score}, rewards=rewards,
            ))

    logger.info(
        "Quiz on module %d by user %d: score=%d passed=%s (+%d credits)",
        module.id, user_id, score, passed, credits_awarded,
    )
    return QuizResult(
        attempt=attempt,
        passed=passed,
        credits_awarded=credits_awarded,
        milestones=[m for m in milestones if m.awarded],
    )


async def count_quiz_attempts(db: AsyncSession, user_id: int, module_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(QuizAttempt).where(
            QuizAttempt.user_id == user_id,
            QuizAttempt.module_id == module_id,
        )
    )
    return result.scalar_one()
