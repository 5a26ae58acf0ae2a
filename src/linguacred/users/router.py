"""User endpoints: own profile and language preference."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.auth.dependencies import get_current_user
from linguacred.database import atomic
from linguacred.db.models import User
from linguacred.dependencies import get_db
from linguacred.users.schemas import LanguagePreferenceRequest, UserResponse
from linguacred.users.service import update_language_preference

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_profile(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.put("/me/language", response_model=UserResponse)
async def put_language_preference(
    body: LanguagePreferenceRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """Select the language whose foundation modules the user works through."""
    try:
        async with atomic(db):
            updated = await update_language_preference(db, user.id, body.language)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return UserResponse.model_validate(updated)
