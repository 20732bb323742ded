"""
Credit ledger.

The ledger is the only writer of `users.credits`. Debits are a single
conditional UPDATE (`credits >= amount` is part of the WHERE clause), so two
concurrent debits against the last unit of balance are serialized by the
database row lock and only one of them matches.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from website_improver.features.credits.models.user_account import PlanTier, UserAccount
from website_improver.platform.exceptions import (
    InputValidationError,
    InsufficientCreditsError,
    NotFoundError,
    PersistenceError,
)
from website_improver.platform.logger import get_logger

logger = get_logger(__name__)


def _require_positive(amount: float) -> None:
    if amount is None or amount <= 0:
        raise InputValidationError("Amount must be positive")


async def get_account(db: AsyncSession, user_id: str) -> Optional[UserAccount]:
    result = await db.execute(select(UserAccount).where(UserAccount.id == user_id))
    return result.scalar_one_or_none()


async def get_balance(db: AsyncSession, user_id: str) -> float:
    result = await db.execute(select(UserAccount.credits).where(UserAccount.id == user_id))
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    return balance


async def has_sufficient_balance(db: AsyncSession, user_id: str, amount: float) -> bool:
    result = await db.execute(select(UserAccount.credits).where(UserAccount.id == user_id))
    balance = result.scalar_one_or_none()
    if balance is None:
        return False
    return balance >= amount


async def debit(
    db: AsyncSession,
    user_id: str,
    amount: float,
    action: Optional[str] = None,
    reference_id: Optional[str] = None,
) -> float:
    """
    Atomically decrement the balance and return the new value.

    Raises InsufficientCreditsError when balance < amount and NotFoundError
    when the account does not exist.
    """
    _require_positive(amount)

    try:
        result = await db.execute(
            update(UserAccount)
            .where(UserAccount.id == user_id, UserAccount.credits >= amount)
            .values(
                credits=UserAccount.credits - amount,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Nothing was written; ending the transaction must not expire the caller's instances
            await db.commit()
            if await get_account(db, user_id) is None:
                raise NotFoundError("User not found", code="USER_NOT_FOUND")
            raise InsufficientCreditsError("Insufficient credits")

        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Credit debit failed for user {user_id}: {e}")
        raise PersistenceError("Failed to update user credits")

    new_balance = await get_balance(db, user_id)
    if action and reference_id:
        logger.info(f"Credit deduction: {amount} credits for {action} ({reference_id}), user {user_id} now has {new_balance}")
    return new_balance


async def credit(db: AsyncSession, user_id: str, amount: float) -> float:
    """Unconditionally increment the balance (top-ups and refunds)."""
    _require_positive(amount)

    try:
        result = await db.execute(
            update(UserAccount)
            .where(UserAccount.id == user_id)
            .values(
                credits=UserAccount.credits + amount,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await db.rollback()
            raise NotFoundError("User not found", code="USER_NOT_FOUND")
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Credit top-up failed for user {user_id}: {e}")
        raise PersistenceError("Failed to update user credits")

    new_balance = await get_balance(db, user_id)
    logger.info(f"Added {amount} credits to user {user_id}, balance now {new_balance}")
    return new_balance


async def provision_account(
    db: AsyncSession,
    user_id: str,
    email: Optional[str] = None,
    plan: PlanTier = PlanTier.free,
    credits: float = 0,
) -> UserAccount:
    """Create the credit account for a newly provisioned user. Idempotent."""
    existing = await get_account(db, user_id)
    if existing:
        return existing

    account = UserAccount(id=user_id, email=email, plan=plan, credits=credits)
    db.add(account)
    try:
        await db.commit()
    except IntegrityError:
        # Another delivery of the same identity event won the insert
        await db.rollback()
        existing = await get_account(db, user_id)
        if existing is None:
            raise PersistenceError("Failed to create user account")
        return existing

    await db.refresh(account)
    logger.info(f"Provisioned account {user_id} on {plan.value} plan with {credits} credits")
    return account


async def update_plan(db: AsyncSession, user_id: str, plan: PlanTier) -> UserAccount:
    account = await get_account(db, user_id)
    if account is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")

    account.plan = plan
    await db.commit()
    await db.refresh(account)
    return account
