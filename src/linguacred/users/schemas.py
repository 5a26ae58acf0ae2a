"""Pydantic request/response models for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    display_name: str | None = None
    selected_language: str | None = None
    created_at: datetime


class LanguagePreferenceRequest(BaseModel):
    language: str = Field(min_length=1, max_length=32)

    @field_validator("language")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        """Normalize language to lowercase."""
        return v.lower().strip()
