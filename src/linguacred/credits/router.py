"""Credit balance, ledger and purchase endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.auth.dependencies import get_current_user
from linguacred.config import Settings
from linguacred.credits.balance_cache import get_cached_balance
from linguacred.credits.ledger_service import (
    audit_balance,
    complete_purchase,
    create_pending_purchase,
    list_transactions,
    use_credits,
)
from linguacred.credits.schemas import (
    AuditResponse,
    BalanceResponse,
    CompletePurchaseRequest,
    CreatePurchaseRequest,
    CreatePurchaseResponse,
    SpendRequest,
    TransactionListResponse,
    TransactionResponse,
)
from linguacred.database import atomic
from linguacred.db.models import User
from linguacred.dependencies import get_db, get_redis_dep, get_settings_dep

router = APIRouter(prefix="/api/v1/credits", tags=["Credits"])


@router.get("/balance", response_model=BalanceResponse)
async def get_my_balance(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    settings: Settings = Depends(get_settings_dep),
) -> BalanceResponse:
    credits = await get_cached_balance(db, redis, user.id, settings.balance_cache_ttl_seconds)
    return BalanceResponse(credits=credits)


@router.get("/transactions", response_model=TransactionListResponse)
async def get_my_transactions(
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TransactionListResponse:
    rows = await list_transactions(db, user.id, limit=limit)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(r) for r in rows]
    )


@router.post("/purchases", response_model=CreatePurchaseResponse, status_code=201)
async def create_purchase(
    body: CreatePurchaseRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    settings: Settings = Depends(get_settings_dep),
) -> CreatePurchaseResponse:
    async with atomic(db, redis):
        txn_id = await create_pending_purchase(
            db,
            user.id,
            body.credits,
            body.price,
            currency=body.currency or settings.purchase_currency,
            payment_method=body.payment_method or settings.purchase_payment_method,
        )
    return CreatePurchaseResponse(transaction_id=txn_id)


@router.post("/purchases/{transaction_id}/complete", response_model=BalanceResponse)
async def finish_purchase(
    transaction_id: int,
    body: CompletePurchaseRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
) -> BalanceResponse:
    async with atomic(db, redis):
        credits = await complete_purchase(db, user.id, transaction_id, body.payment_id)
    return BalanceResponse(credits=credits)


@router.post("/spend", response_model=BalanceResponse)
async def spend_credits(
    body: SpendRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
) -> BalanceResponse:
    async with atomic(db, redis):
        credits = await use_credits(db, user.id, body.amount, body.description)
    return BalanceResponse(credits=credits)


@router.get("/audit", response_model=AuditResponse)
async def get_my_audit(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> AuditResponse:
    audit = await audit_balance(db, user.id)
    return AuditResponse(
        balance=audit.balance,
        ledger_total=audit.ledger_total,
        consistent=audit.consistent,
    )
