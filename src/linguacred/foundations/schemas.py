"""Pydantic request/response models for foundation module endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from linguacred.db.models import ModuleStatus


class FoundationModuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    language: str
    module_type: str
    title: str
    description: str
    order_index: int
    required_score: int
    credits_reward: int


class ModuleProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    module_id: int
    language: str
    status: ModuleStatus
    progress_percent: int
    time_spent_seconds: int
    best_score: int | None = None
    completed_at: datetime | None = None
    last_accessed_at: datetime


class FoundationProgressResponse(BaseModel):
    language: str | None = None
    modules: list[FoundationModuleResponse]
    progress: list[ModuleProgressResponse]
    total_modules: int
    completed_modules: int
    overall_progress: int


class ModuleListResponse(BaseModel):
    modules: list[FoundationModuleResponse]


class ModuleDetailResponse(BaseModel):
    module: FoundationModuleResponse
    progress: ModuleProgressResponse | None = None


class UpdateProgressRequest(BaseModel):
    status: ModuleStatus | None = None
    progress_percent: int | None = Field(default=None, ge=0, le=100)
    time_spent: int = Field(default=0, ge=0)
    best_score: int | None = Field(default=None, ge=0, le=100)


class QuizAttemptRequest(BaseModel):
    score: int = Field(ge=0, le=100)
    total_questions: int = Field(ge=1)
    correct_answers: int = Field(ge=0)
    time_spent: int = Field(default=0, ge=0)
    answers: list[dict[str, Any]] = []

    @model_validator(mode="after")
    def correct_within_total(self) -> QuizAttemptRequest:
        if self.correct_answers > self.total_questions:
            msg = "correct_answers cannot exceed total_questions"
            raise ValueError(msg)
        return self


class QuizAttemptResponse(BaseModel):
    attempt_id: int
    passed: bool
    credits_awarded: int
    milestones: list[str] = []


class FeatureAccessResponse(BaseModel):
    language: str | None = None
    has_access: bool
    completed_modules: int
    total_modules: int
    percentage: int
