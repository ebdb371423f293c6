# labsupply/routes/orders.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from labsupply.config import settings
from labsupply.database import get_db
from labsupply.models.admin_user import AdminUser
from labsupply.models.merchant import Merchant
from labsupply.models.order import Order, OrderItem
from labsupply.models.product import Product
import labsupply.schemas.order as order_schemas
from labsupply.utils.audit import write_audit_best_effort
from labsupply.utils.order_ops import (
    fund_order, is_valid_transition, transition_order, unit_price_cents, usd_wallet,
    InvalidOrderTransition, OrderFundingError,
)
from labsupply.utils.row_validator import INTEGER_MAX
from labsupply.utils.tokenJWT import get_current_admin, get_current_merchant
from labsupply.utils.wallet_ops import WalletInsufficientBalanceError, WalletOperationError

router = APIRouter(tags=["Orders"])
logger = logging.getLogger(__name__)


# Map Order model to OrderResponse schema
def _order_to_out(order: Order) -> order_schemas.OrderResponse:
    items = [
        order_schemas.OrderItemOut(
            product_id=it.product_id,
            sku=it.sku,
            name=it.name,
            qty=it.qty,
            unit_price_cents=it.unit_price_cents,
            line_total_cents=it.qty * it.unit_price_cents,
        )
        for it in order.items
    ]
    return order_schemas.OrderResponse(
        id=order.id,
        merchant_id=order.merchant_id,
        external_order_id=order.external_order_id,
        status=order.status,
        currency=order.currency,
        subtotal_cents=order.subtotal_cents,
        shipping_estimate_cents=order.shipping_estimate_cents,
        total_estimate_cents=order.total_estimate_cents,
        reserved_cents=order.reserved_cents,
        charged_cents=order.charged_cents,
        shipping_address=order.shipping_address,
        customer_email=order.customer_email,
        customer_note=order.customer_note,
        supplier_notes=order.supplier_notes,
        meta=order.meta,
        released_at=order.released_at,
        shipped_at=order.shipped_at,
        created_at=order.created_at,
        items=items,
    )


def _page(query, page: int, page_size: int):
    query = query.order_by(Order.created_at.desc(), Order.id.desc())
    total = query.count()
    orders = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": [_order_to_out(o) for o in orders], "total": total, "page": page, "page_size": page_size}


def _merchant_order(db: Session, merchant: Merchant, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id, Order.merchant_id == merchant.id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def _duplicate_response(db: Session, order: Order):
    wallet = usd_wallet(db, order.merchant_id)
    return {
        "supplier_order_id": order.id,
        "status": order.status,
        "is_duplicate": True,
        "is_funded": order.status not in ("RECEIVED", "AWAITING_FUNDS", "ON_HOLD_PAYMENT"),
        "estimated_total_cents": order.total_estimate_cents,
        "wallet_balance_cents": wallet.balance_cents if wallet else 0,
    }


def _build_order(db: Session, merchant: Merchant, payload: order_schemas.OrderCreate) -> Order:
    # Lines for the same SKU are merged into one
    quantities, names = {}, {}
    for line in payload.items:
        sku = line.sku.strip().upper()
        quantities[sku] = quantities.get(sku, 0) + line.qty
        names.setdefault(sku, line.name)

    products = {
        p.sku: p
        for p in db.query(Product).filter(Product.sku.in_(list(quantities)), Product.active.is_(True)).all()
    }

    order = Order(
        merchant_id=merchant.id,
        external_order_id=payload.external_order_id.strip(),
        status="RECEIVED",
        currency="USD",
        shipping_address=payload.shipping_address,
        customer_email=payload.customer_email,
        customer_note=payload.customer_note,
        reserved_cents=0,
        charged_cents=0,
    )
    subtotal = 0
    for sku, qty in quantities.items():
        product = products.get(sku)
        if product is None:
            raise HTTPException(status_code=400, detail=f"Product not found: {sku}")
        if qty < (product.min_order_qty or 1):
            raise HTTPException(status_code=400, detail=f"Minimum order quantity for {sku} is {product.min_order_qty}")
        if product.max_order_qty is not None and qty > product.max_order_qty:
            raise HTTPException(status_code=400, detail=f"Maximum order quantity for {sku} is {product.max_order_qty}")

        price = unit_price_cents(product.cost_cents, merchant.price_adjustment_percent or 0)
        subtotal += price * qty
        order.items.append(OrderItem(
            product_id=product.id, sku=product.sku, name=names[sku] or product.name,
            qty=qty, unit_price_cents=price,
        ))

    shipping = settings.ORDER_SHIPPING_ESTIMATE_CENTS
    if subtotal + shipping > INTEGER_MAX:
        raise HTTPException(status_code=400, detail="Order total exceeds the maximum allowed amount")
    order.subtotal_cents = subtotal
    order.shipping_estimate_cents = shipping
    order.total_estimate_cents = subtotal + shipping
    return order


# =========================
# MERCHANT ORDERS
# =========================
@router.post("/merchant/orders", response_model=order_schemas.OrderCreatedResponse,
             response_model_exclude_none=True, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: order_schemas.OrderCreate,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    current_merchant: Merchant = Depends(get_current_merchant),
):
    if not current_merchant.can_ship:
        raise HTTPException(status_code=403, detail="Merchant is not approved to place orders. Complete KYB first.")

    external_id = payload.external_order_id.strip()
    existing = (
        db.query(Order)
        .filter(Order.merchant_id == current_merchant.id, Order.external_order_id == external_id)
        .first()
    )
    if existing:
        response.status_code = status.HTTP_200_OK
        return _duplicate_response(db, existing)

    order = _build_order(db, current_merchant, payload)
    db.add(order)
    try:
        db.commit()
    except IntegrityError:
        # Same storefront order submitted concurrently
        db.rollback()
        existing = (
            db.query(Order)
            .filter(Order.merchant_id == current_merchant.id, Order.external_order_id == external_id)
            .one()
        )
        response.status_code = status.HTTP_200_OK
        return _duplicate_response(db, existing)
    db.refresh(order)

    check = fund_order(db, order)
    db.refresh(order)

    write_audit_best_effort(
        db, action="order.created", entity_type="order", entity_id=order.id,
        merchant_id=current_merchant.id, ip=request.client.host if request.client else None,
        meta={
            "external_order_id": order.external_order_id,
            "total_estimate_cents": order.total_estimate_cents,
            "status": order.status,
        },
    )
    return {
        "supplier_order_id": order.id,
        "status": order.status,
        "is_duplicate": False,
        "is_funded": order.status == "FUNDED",
        "estimated_total_cents": order.total_estimate_cents,
        "wallet_balance_cents": check.wallet_balance_cents,
        "available_after_reserve_cents": check.available_after_reserve_cents,
        "compliance_reserve_cents": check.compliance_reserve_cents,
        "compliance_message": check.message,
    }


@router.get("/merchant/orders", response_model=order_schemas.OrdersPage)
def list_my_orders(
    status: Optional[order_schemas.OrderStatus] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_merchant: Merchant = Depends(get_current_merchant),
):
    query = db.query(Order).filter(Order.merchant_id == current_merchant.id)
    if status:
        query = query.filter(Order.status == status)
    return _page(query, page, page_size)


@router.get("/merchant/orders/{order_id}", response_model=order_schemas.OrderResponse)
def get_my_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_merchant: Merchant = Depends(get_current_merchant),
):
    return _order_to_out(_merchant_order(db, current_merchant, order_id))


@router.post("/merchant/orders/{order_id}/fund", response_model=order_schemas.OrderResponse)
def retry_order_funding(
    order_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_merchant: Merchant = Depends(get_current_merchant),
):
    """Retry funding after the merchant topped up the wallet."""
    order = _merchant_order(db, current_merchant, order_id)
    try:
        fund_order(db, order, park_if_short=False)
    except InvalidOrderTransition as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OrderFundingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    db.refresh(order)

    write_audit_best_effort(
        db, action="order.funded", entity_type="order", entity_id=order.id,
        merchant_id=current_merchant.id, ip=request.client.host if request.client else None,
        meta={"reserved_cents": order.reserved_cents},
    )
    return _order_to_out(order)


@router.post("/merchant/orders/{order_id}/cancel", response_model=order_schemas.OrderCancelResponse)
def cancel_order(
    order_id: int,
    payload: order_schemas.OrderCancel,
    request: Request,
    db: Session = Depends(get_db),
    current_merchant: Merchant = Depends(get_current_merchant),
):
    order = _merchant_order(db, current_merchant, order_id)
    previous_status, released = order.status, order.reserved_cents
    if not is_valid_transition(previous_status, "CANCELLED"):
        raise HTTPException(status_code=400, detail=f"Cannot cancel order in {previous_status} status")

    notes = f"Cancelled: {payload.reason}" if payload.reason else "Cancelled by merchant"
    transition_order(db, order, "CANCELLED", notes=notes)

    write_audit_best_effort(
        db, action="order.cancelled", entity_type="order", entity_id=order.id,
        merchant_id=current_merchant.id, ip=request.client.host if request.client else None,
        meta={"reason": payload.reason, "previous_status": previous_status, "released_cents": released},
    )
    return {"success": True, "status": order.status}


# =========================
# ADMIN ORDERS
# =========================
@router.get("/admin/orders", response_model=order_schemas.OrdersPage)
def list_orders(
    status: Optional[order_schemas.OrderStatus] = Query(None),
    merchant_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    query = db.query(Order)
    if status:
        query = query.filter(Order.status == status)
    if merchant_id:
        query = query.filter(Order.merchant_id == merchant_id)
    return _page(query, page, page_size)


@router.get("/admin/orders/{order_id}", response_model=order_schemas.OrderResponse)
def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return _order_to_out(order)


@router.post("/admin/orders/{order_id}/status", response_model=order_schemas.OrderResponse)
def change_order_status(
    order_id: int,
    payload: order_schemas.OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    previous_status = order.status
    try:
        transition_order(db, order, payload.status, notes=payload.notes)
    except (InvalidOrderTransition, OrderFundingError, WalletInsufficientBalanceError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except WalletOperationError as e:
        logger.error("Order %s transition to %s failed: %s", order_id, payload.status, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    write_audit_best_effort(
        db, action="order.status_changed", entity_type="order", entity_id=order.id,
        actor_id=current_admin.id, merchant_id=order.merchant_id,
        ip=request.client.host if request.client else None,
        meta={"from": previous_status, "to": order.status, "notes": payload.notes},
    )
    return _order_to_out(order)
