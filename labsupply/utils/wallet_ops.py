# labsupply/utils/wallet_ops.py
"""Wallet balance operations.

Every balance change goes through :func:`adjust_wallet_balance`, which locks
the wallet row, refuses to take the balance below zero and writes the ledger
entry in the same commit.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labsupply.config import settings
from labsupply.models.wallet import WalletAccount, WalletTransaction

logger = logging.getLogger(__name__)


class WalletOperationError(Exception):
    pass


class WalletInsufficientBalanceError(WalletOperationError):
    pass


class WalletNotFoundError(WalletOperationError):
    pass


@dataclass
class WalletAdjustResult:
    new_balance: int
    transaction_id: int


@dataclass
class FundingCheck:
    can_fund: bool
    amount_cents: int
    wallet_balance_cents: int
    reserved_cents: int
    compliance_reserve_cents: int
    available_after_reserve_cents: int
    required_balance_cents: int
    message: Optional[str] = None


def format_dollars(cents: int) -> str:
    return f"${cents / 100:,.2f}"


def _lock_wallet(db: Session, wallet_id: int) -> Optional[WalletAccount]:
    # FOR UPDATE is emitted on PostgreSQL; SQLite serializes writers anyway
    return db.query(WalletAccount).filter(WalletAccount.id == wallet_id).with_for_update().first()


def adjust_wallet_balance(
    db: Session,
    *,
    wallet_id: int,
    merchant_id: int,
    amount_cents: int,
    type: str,
    reference_type: Optional[str] = None,
    reference_id: Optional[str] = None,
    description: Optional[str] = None,
    metadata: Optional[dict] = None,
    idempotency_key: Optional[str] = None,
) -> WalletAdjustResult:
    """Credit (positive) or debit (negative) a wallet and record the ledger entry.

    A repeated ``idempotency_key`` returns the earlier transaction and the
    current balance without touching the wallet again.
    """
    if idempotency_key:
        seen = db.query(WalletTransaction).filter(WalletTransaction.idempotency_key == idempotency_key).first()
        if seen is not None:
            wallet = db.query(WalletAccount).filter(WalletAccount.id == seen.wallet_id).first()
            return WalletAdjustResult(new_balance=wallet.balance_cents, transaction_id=seen.id)

    wallet = _lock_wallet(db, wallet_id)
    if wallet is None:
        raise WalletNotFoundError(f"Wallet not found: {wallet_id}")

    new_balance = wallet.balance_cents + amount_cents
    if new_balance < 0:
        db.rollback()
        raise WalletInsufficientBalanceError(
            f"Insufficient balance: have {wallet.balance_cents} cents, need {-amount_cents} cents"
        )

    wallet.balance_cents = new_balance
    txn = WalletTransaction(
        merchant_id=merchant_id,
        wallet_id=wallet.id,
        type=type,
        amount_cents=amount_cents,
        balance_after_cents=new_balance,
        reference_type=reference_type,
        reference_id=str(reference_id) if reference_id is not None else None,
        description=description,
        idempotency_key=idempotency_key,
        meta=metadata or {},
    )
    db.add(txn)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Wallet %s adjustment of %d cents failed: %s", wallet_id, amount_cents, e)
        raise WalletOperationError("Wallet operation failed") from e

    db.refresh(txn)
    return WalletAdjustResult(new_balance=new_balance, transaction_id=txn.id)


def adjust_wallet_reserved(db: Session, wallet_id: int, reserved_delta: int) -> int:
    """Move funds in or out of the reserved bucket; returns the new reserved amount."""
    wallet = _lock_wallet(db, wallet_id)
    if wallet is None:
        raise WalletNotFoundError(f"Wallet not found: {wallet_id}")

    new_reserved = wallet.reserved_cents + reserved_delta
    if new_reserved < 0:
        db.rollback()
        raise WalletOperationError("Reserved amount cannot be negative")
    # Releasing a hold always succeeds, even after a debit took the balance below it
    if reserved_delta > 0 and new_reserved > wallet.balance_cents:
        db.rollback()
        raise WalletInsufficientBalanceError(
            f"Insufficient balance: cannot reserve {new_reserved} cents of {wallet.balance_cents}"
        )

    wallet.reserved_cents = new_reserved
    db.commit()
    return new_reserved


def check_funding(wallet: Optional[WalletAccount], amount_cents: int, reserve_cents: Optional[int] = None) -> FundingCheck:
    """Decide whether ``amount_cents`` can be spent while keeping the compliance reserve untouched."""
    reserve = settings.COMPLIANCE_RESERVE_CENTS if reserve_cents is None else reserve_cents
    balance = wallet.balance_cents if wallet is not None else 0
    reserved = wallet.reserved_cents if wallet is not None else 0

    available = balance - reserved - reserve
    can_fund = available >= amount_cents
    return FundingCheck(
        can_fund=can_fund,
        amount_cents=amount_cents,
        wallet_balance_cents=balance,
        reserved_cents=reserved,
        compliance_reserve_cents=reserve,
        available_after_reserve_cents=max(0, available),
        required_balance_cents=amount_cents + reserve,
        message=None if can_fund else
        f"Insufficient funds. {format_dollars(reserve)} compliance reserve must be maintained.",
    )
