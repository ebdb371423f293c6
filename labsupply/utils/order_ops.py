# labsupply/utils/order_ops.py
"""Order lifecycle.

Funding an order moves its estimate into the wallet's reserved bucket and
holds the ordered units in inventory. Shipping turns the hold into a charge,
cancelling releases it. Every change of ``Order.status`` goes through
:func:`transition_order` so the transition table is enforced in one place.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from labsupply.models.inventory import Inventory
from labsupply.models.order import Order
from labsupply.models.wallet import WalletAccount
from labsupply.utils.wallet_ops import (
    adjust_wallet_balance, adjust_wallet_reserved, check_funding, FundingCheck,
    WalletInsufficientBalanceError, WalletNotFoundError,
)

logger = logging.getLogger(__name__)

ORDER_STATUS_TRANSITIONS = {
    "RECEIVED": ("AWAITING_FUNDS", "FUNDED", "ON_HOLD_COMPLIANCE", "CANCELLED"),
    "AWAITING_FUNDS": ("FUNDED", "ON_HOLD_PAYMENT", "CANCELLED"),
    "ON_HOLD_PAYMENT": ("AWAITING_FUNDS", "FUNDED", "CANCELLED"),
    "ON_HOLD_COMPLIANCE": ("RECEIVED", "CANCELLED"),
    "FUNDED": ("RELEASED_TO_FULFILLMENT", "ON_HOLD_COMPLIANCE", "CANCELLED", "REFUNDED"),
    "RELEASED_TO_FULFILLMENT": ("PICKING", "CANCELLED", "REFUNDED"),
    "PICKING": ("PACKED", "RELEASED_TO_FULFILLMENT"),
    "PACKED": ("SHIPPED", "PICKING"),
    "SHIPPED": ("COMPLETE", "REFUNDED"),
    "COMPLETE": ("REFUNDED",),
    "CANCELLED": (),
    "REFUNDED": (),
}
ORDER_STATUSES = tuple(ORDER_STATUS_TRANSITIONS)


class InvalidOrderTransition(Exception):
    pass


class OrderFundingError(Exception):
    def __init__(self, check: FundingCheck):
        super().__init__(check.message or "Insufficient funds")
        self.check = check


def is_valid_transition(from_status: str, to_status: str) -> bool:
    return to_status in ORDER_STATUS_TRANSITIONS.get(from_status, ())


def unit_price_cents(cost_cents: int, price_adjustment_percent: int) -> int:
    """Wholesale price after the merchant's adjustment, rounded half up."""
    return (cost_cents * (100 + price_adjustment_percent) + 50) // 100


def usd_wallet(db: Session, merchant_id: int) -> Optional[WalletAccount]:
    return (
        db.query(WalletAccount)
        .filter(WalletAccount.merchant_id == merchant_id, WalletAccount.currency == "USD")
        .first()
    )


def _move_held_units(db: Session, order: Order, sign: int):
    for item in order.items:
        inventory = (
            db.query(Inventory).filter(Inventory.product_id == item.product_id).with_for_update().first()
        )
        if inventory is None:
            if sign < 0:
                continue
            inventory = Inventory(product_id=item.product_id, on_hand=0, reserved=0, incoming=0)
            db.add(inventory)
        inventory.reserved = max(0, (inventory.reserved or 0) + sign * item.qty)


def _release_hold(db: Session, order: Order, wallet: Optional[WalletAccount]):
    """Undo the funding hold; the caller's pending order changes commit with it."""
    held = order.reserved_cents
    order.reserved_cents = 0
    if held <= 0:
        db.commit()
        return
    _move_held_units(db, order, -1)
    if wallet is None:
        db.commit()
        return
    # Never release more than the wallet still holds
    adjust_wallet_reserved(db, wallet.id, -min(held, wallet.reserved_cents))


def fund_order(db: Session, order: Order, park_if_short: bool = True) -> FundingCheck:
    """Hold the order's estimate in the merchant wallet and move it to FUNDED.

    When the wallet cannot cover the estimate plus the compliance reserve the
    order is parked in AWAITING_FUNDS (or :class:`OrderFundingError` is raised
    when ``park_if_short`` is false).
    """
    if not is_valid_transition(order.status, "FUNDED"):
        raise InvalidOrderTransition(f"Cannot fund order in {order.status} status")

    wallet = usd_wallet(db, order.merchant_id)
    if order.reserved_cents > 0:
        # Back from a compliance hold; the funds never left the reserved bucket
        order.status = "FUNDED"
        db.commit()
        return check_funding(wallet, 0)

    check = check_funding(wallet, order.total_estimate_cents)
    if check.can_fund and wallet is not None:
        order.status = "FUNDED"
        order.reserved_cents = order.total_estimate_cents
        order.meta = None
        _move_held_units(db, order, 1)
        try:
            # Commits the order, inventory and wallet hold together
            adjust_wallet_reserved(db, wallet.id, order.total_estimate_cents)
            logger.info("Order %s funded, %d cents reserved", order.id, order.total_estimate_cents)
            return check
        except WalletInsufficientBalanceError:
            # Another spend got there first; everything above was rolled back
            check = check_funding(wallet, order.total_estimate_cents)
            check.can_fund = False
            check.message = check.message or "Insufficient funds"

    if not park_if_short:
        raise OrderFundingError(check)
    order.status = "AWAITING_FUNDS"
    order.meta = {
        "compliance_blocked": True,
        "required_balance": check.required_balance_cents,
        "current_balance": check.wallet_balance_cents,
    }
    db.commit()
    return check


def _ship(db: Session, order: Order):
    wallet = usd_wallet(db, order.merchant_id)
    if wallet is None:
        raise WalletNotFoundError(f"Wallet not found for merchant {order.merchant_id}")
    amount = order.total_estimate_cents
    # Charge first so a failed debit leaves the order untouched
    adjust_wallet_balance(
        db,
        wallet_id=wallet.id,
        merchant_id=order.merchant_id,
        amount_cents=-amount,
        type="ORDER_CHARGE",
        reference_type="order",
        reference_id=str(order.id),
        description=f"Order {order.external_order_id}",
        idempotency_key=f"order:{order.id}:charge",
    )
    for item in order.items:
        inventory = (
            db.query(Inventory).filter(Inventory.product_id == item.product_id).with_for_update().first()
        )
        if inventory is not None:
            inventory.on_hand = max(0, (inventory.on_hand or 0) - item.qty)
            inventory.reserved = max(0, (inventory.reserved or 0) - item.qty)

    held = order.reserved_cents
    order.status = "SHIPPED"
    order.charged_cents = amount
    order.reserved_cents = 0
    order.shipped_at = datetime.now(timezone.utc)
    if held > 0:
        adjust_wallet_reserved(db, wallet.id, -min(held, wallet.reserved_cents))
    else:
        db.commit()


def _refund(db: Session, order: Order):
    wallet = usd_wallet(db, order.merchant_id)
    if order.charged_cents > 0:
        adjust_wallet_balance(
            db,
            wallet_id=wallet.id,
            merchant_id=order.merchant_id,
            amount_cents=order.charged_cents,
            type="REFUND",
            reference_type="order",
            reference_id=str(order.id),
            description=f"Refund of order {order.external_order_id}",
            idempotency_key=f"order:{order.id}:refund",
        )
        order.status = "REFUNDED"
        db.commit()
        return
    order.status = "REFUNDED"
    _release_hold(db, order, wallet)


def transition_order(db: Session, order: Order, to_status: str, notes: Optional[str] = None) -> Order:
    """Move an order to ``to_status`` and apply the money and stock side effects.

    RELEASED_TO_FULFILLMENT is the hand-off to the shipping side: it stamps
    ``released_at`` and the order becomes visible to pickers.
    """
    from_status = order.status
    if not is_valid_transition(from_status, to_status):
        raise InvalidOrderTransition(f"Cannot move order from {from_status} to {to_status}")

    if notes:
        order.supplier_notes = notes

    if to_status == "FUNDED":
        fund_order(db, order, park_if_short=False)
    elif to_status == "CANCELLED":
        order.status = "CANCELLED"
        _release_hold(db, order, usd_wallet(db, order.merchant_id))
    elif to_status == "SHIPPED":
        _ship(db, order)
    elif to_status == "REFUNDED":
        _refund(db, order)
    else:
        order.status = to_status
        if to_status == "RELEASED_TO_FULFILLMENT" and order.released_at is None:
            order.released_at = datetime.now(timezone.utc)
        db.commit()

    db.refresh(order)
    logger.info("Order %s moved from %s to %s", order.id, from_status, order.status)
    return order
