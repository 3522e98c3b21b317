# printvend/services/wallet.py
from decimal import Decimal
from typing import List

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from printvend.errors import InsufficientCoins
from printvend.models import TransactionType, WalletAccount, WalletTransaction, now_utc


def ensure_wallet(db: Session, user_id: str) -> WalletAccount:
    """Return the user's wallet, creating it with a zero balance on first need."""
    wallet = db.get(WalletAccount, user_id)
    if wallet:
        return wallet
    db.add(WalletAccount(user_id=user_id, balance=Decimal("0")))
    try:
        db.commit()
    except IntegrityError:
        # created by a concurrent request
        db.rollback()
    return db.get(WalletAccount, user_id)


def get_balance(db: Session, user_id: str) -> Decimal:
    balance = db.execute(
        select(WalletAccount.balance).where(WalletAccount.user_id == user_id)
    ).scalar_one_or_none()
    return Decimal(balance) if balance is not None else Decimal("0")


def apply_settlement(
    db: Session, user_id: str, coins_redeemed: Decimal, coins_earned: int, order_ref: str
) -> None:
    """
    Append DEBIT / EARN entries for one order and move the stored balance
    by the same delta, inside the caller's transaction.

    The balance changes through a single conditional UPDATE, so two
    settlements for the same user never overwrite each other and a debit
    can never take the balance below zero.
    """
    coins_redeemed = Decimal(coins_redeemed)
    if coins_redeemed > 0:
        db.add(WalletTransaction(
            user_id=user_id, amount=-coins_redeemed,
            type=TransactionType.DEBIT, note=f"Paid for {order_ref}",
        ))
    if coins_earned > 0:
        db.add(WalletTransaction(
            user_id=user_id, amount=Decimal(coins_earned),
            type=TransactionType.EARN, note=f"Cashback {order_ref}",
        ))
    if coins_redeemed <= 0 and coins_earned <= 0:
        return

    result = db.execute(
        update(WalletAccount)
        .where(WalletAccount.user_id == user_id, WalletAccount.balance >= coins_redeemed)
        .values(
            balance=WalletAccount.balance - coins_redeemed + coins_earned,
            updated_at=now_utc(),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InsufficientCoins()


def ledger_balance(db: Session, user_id: str) -> Decimal:
    """Recompute the balance from the transaction log."""
    total = db.execute(
        select(func.coalesce(func.sum(WalletTransaction.amount), 0))
        .where(WalletTransaction.user_id == user_id)
    ).scalar_one()
    return Decimal(total)


def history(db: Session, user_id: str) -> List[WalletTransaction]:
    return db.execute(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.created_at.desc())
    ).scalars().all()
