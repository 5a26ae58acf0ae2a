"""Pydantic request/response models for credit endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from linguacred.db.models import TransactionStatus, TransactionType


class BalanceResponse(BaseModel):
    credits: int


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: TransactionType
    status: TransactionStatus
    amount: int
    description: str
    price: Decimal | None = None
    currency: str | None = None
    payment_method: str | None = None
    created_at: datetime


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]


class CreatePurchaseRequest(BaseModel):
    credits: int = Field(gt=0)
    price: Decimal = Field(ge=0)
    currency: str | None = None
    payment_method: str | None = None


class CreatePurchaseResponse(BaseModel):
    transaction_id: int


class CompletePurchaseRequest(BaseModel):
    payment_id: str = Field(min_length=1, max_length=128)


class SpendRequest(BaseModel):
    amount: int = Field(gt=0)
    description: str = Field(min_length=1, max_length=256)


class AuditResponse(BaseModel):
    balance: int
    ledger_total: int
    consistent: bool
