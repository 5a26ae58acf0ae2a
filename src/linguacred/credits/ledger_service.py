"""Credit ledger: balance changes paired with auditable transaction entries.

A balance is never written on its own. Every change appends a COMPLETED
ledger entry (or completes a PENDING purchase) inside the caller's
transaction, so the sum of a user's completed entries always equals the
stored balance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.credits.balance_cache import queue_balance_change
from linguacred.database import dialect_insert
from linguacred.db.models import (
    CreditBalance,
    CreditTransaction,
    TransactionStatus,
    TransactionType,
)
from linguacred.errors import (
    AlreadyProcessedError,
    InsufficientCreditsError,
    InvalidAmountError,
    NotOwnedError,
    TransactionNotFoundError,
    UserNotFoundError,
)
from linguacred.users.service import get_user_by_id, lock_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceAudit:
    user_id: int
    balance: int
    ledger_total: int

    @property
    def consistent(self) -> bool:
        return self.balance == self.ledger_total


async def _ensure_balance_row(db: AsyncSession, user_id: int) -> None:
    stmt = dialect_insert(db, CreditBalance).values(user_id=user_id, credits=0)
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))


async def _adjust_balance(db: AsyncSession, user_id: int, amount: int) -> int | None:
    """Add ``amount`` to the balance unless that would make it negative.

    Returns the new balance, or None when the guard rejected the change.
    """
    result = await db.execute(
        update(CreditBalance)
        .where(
            CreditBalance.user_id == user_id,
            CreditBalance.credits + amount >= 0,
        )
        .values(
            credits=CreditBalance.credits + amount,
            updated_at=datetime.now(timezone.utc),
        )
        .returning(CreditBalance.credits)
    )
    new_balance = result.scalar_one_or_none()
    if new_balance is not None:
        queue_balance_change(db, user_id, new_balance)
    return new_balance


async def apply_ledger_change(
    db: AsyncSession,
    user_id: int,
    amount: int,
    kind: TransactionType,
    description: str,
) -> int:
    """Apply a signed credit change and append its COMPLETED ledger entry.

    Returns the new balance. Raises InsufficientCreditsError, with nothing
    written, when a debit would take the balance below zero.
    """
    if amount == 0:
        raise InvalidAmountError

    await lock_user(db, user_id)
    await _ensure_balance_row(db, user_id)

    new_balance = await _adjust_balance(db, user_id, amount)
    if new_balance is None:
        available = await get_balance(db, user_id)
        raise InsufficientCreditsError(required=-amount, available=available)

    db.add(CreditTransaction(
        user_id=user_id,
        type=kind,
        status=TransactionStatus.COMPLETED,
        amount=amount,
        description=description,
    ))
    await db.flush()

    logger.info(
        "Ledger %s %+d for user %d (balance %d): %s",
        kind.value, amount, user_id, new_balance, description,
    )
    return new_balance


async def add_credits(
    db: AsyncSession,
    user_id: int,
    amount: int,
    description: str,
    kind: TransactionType = TransactionType.REWARD,
) -> int:
    """Credit a user. Returns the new balance."""
    if amount <= 0:
        raise InvalidAmountError("Credit amount must be positive")
    return await apply_ledger_change(db, user_id, amount, kind, description)


async def use_credits(db: AsyncSession, user_id: int, amount: int, description: str) -> int:
    """Spend credits, recorded as a negative USAGE entry. Returns the new balance."""
    if amount <= 0:
        raise InvalidAmountError("Spend amount must be positive")
    return await apply_ledger_change(db, user_id, -amount, TransactionType.USAGE, description)


# ---------------------------------------------------------------------------
# Purchases (two-phase)
# ---------------------------------------------------------------------------


async def create_pending_purchase(
    db: AsyncSession,
    user_id: int,
    credits: int,
    price: Decimal | int | float,
    *,
    currency: str = "NPR",
    payment_method: str = "khalti",
) -> int:
    """Open a PENDING purchase. The balance is untouched until completion."""
    if credits <= 0:
        raise InvalidAmountError("Purchased credits must be positive")
    if await get_user_by_id(db, user_id) is None:
        raise UserNotFoundError

    txn = CreditTransaction(
        user_id=user_id,
        type=TransactionType.PURCHASE,
        status=TransactionStatus.PENDING,
        amount=credits,
        price=Decimal(str(price)),
        currency=currency,
        payment_method=payment_method,
        description=f"Purchase of {credits} credits",
    )
    db.add(txn)
    await db.flush()
    logger.info("Pending purchase %d: %d credits for user %d", txn.id, credits, user_id)
    return txn.id


async def complete_purchase(
    db: AsyncSession,
    user_id: int,
    transaction_id: int,
    payment_id: str,
) -> int:
    """Settle a PENDING purchase owned by ``user_id`` and credit the balance.

    Existence and ownership are checked before the payment id, so a caller
    never learns about someone else's payment. The PENDING -> COMPLETED
    transition is a single conditional update, so a purchase can be settled
    only once however many callers race on it. Returns the new balance.
    """
    await lock_user(db, user_id)
    await _get_owned_purchase(db, user_id, transaction_id)

    reused = await db.execute(
        select(CreditTransaction.id).where(CreditTransaction.payment_id == payment_id)
    )
    if reused.scalar_one_or_none() is not None:
        raise AlreadyProcessedError(f"Payment {payment_id} already applied")

    result = await db.execute(
        update(CreditTransaction)
        .where(
            CreditTransaction.id == transaction_id,
            CreditTransaction.user_id == user_id,
            CreditTransaction.type == TransactionType.PURCHASE,
            CreditTransaction.status == TransactionStatus.PENDING,
        )
        .values(
            status=TransactionStatus.COMPLETED,
            payment_id=payment_id,
            updated_at=datetime.now(timezone.utc),
        )
        .returning(CreditTransaction.amount)
    )
    amount = result.scalar_one_or_none()
    if amount is None:
        raise AlreadyProcessedError

    await _ensure_balance_row(db, user_id)
    new_balance = await _adjust_balance(db, user_id, amount)
    if new_balance is None:
        # A positive increment cannot trip the guard.
        msg = f"Balance update rejected for purchase {transaction_id}"
        raise RuntimeError(msg)

    logger.info("Purchase %d completed: +%d credits for user %d", transaction_id, amount, user_id)
    return new_balance


async def _get_owned_purchase(db: AsyncSession, user_id: int, transaction_id: int) -> CreditTransaction:
    result = await db.execute(
        select(CreditTransaction).where(CreditTransaction.id == transaction_id)
    )
    txn = result.scalar_one_or_none()
    if txn is None or txn.type != TransactionType.PURCHASE:
        raise TransactionNotFoundError
    if txn.user_id != user_id:
        raise NotOwnedError
    return txn


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_balance(db: AsyncSession, user_id: int) -> int:
    """Return the committed balance for a user."""
    result = await db.execute(
        select(CreditBalance.credits).where(CreditBalance.user_id == user_id)
    )
    credits = result.scalar_one_or_none()
    if credits is None:
        if await get_user_by_id(db, user_id) is None:
            raise UserNotFoundError
        return 0
    return credits


async def list_transactions(
    db: AsyncSession, user_id: int, limit: int = 20
) -> list[CreditTransaction]:
    """Most recent ledger entries first."""
    result = await db.execute(
        select(CreditTransaction)
        .where(CreditTransaction.user_id == user_id)
        .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def audit_balance(db: AsyncSession, user_id: int) -> BalanceAudit:
    """Compare the stored balance with the sum of completed ledger entries."""
    balance = await get_balance(db, user_id)
    result = await db.execute(
        select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
            CreditTransaction.user_id == user_id,
            CreditTransaction.status == TransactionStatus.COMPLETED,
        )
    )
    ledger_total = int(result.scalar_one())
    audit = BalanceAudit(user_id=user_id, balance=balance, ledger_total=ledger_total)
    if not audit.consistent:
        logger.error(
            "Balance drift for user %d: stored %d, ledger %d",
            user_id, balance, ledger_total,
        )
    return audit
