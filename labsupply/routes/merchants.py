# labsupply/routes/merchants.py
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from labsupply.database import get_db
from labsupply.models.admin_user import AdminUser
from labsupply.models.merchant import Merchant
from labsupply.models.wallet import WalletAccount
import labsupply.schemas.merchant as merchant_schemas
import labsupply.schemas.wallet as wallet_schemas
from labsupply.utils.audit import write_audit_best_effort
from labsupply.utils.mercury_client import mercury_client
from labsupply.utils.tokenJWT import get_current_admin
from labsupply.utils.wallet_ops import (
    adjust_wallet_balance, WalletInsufficientBalanceError, WalletNotFoundError, WalletOperationError
)

router = APIRouter(prefix="/admin", tags=["Merchants"])
logger = logging.getLogger(__name__)


def _get_merchant(db: Session, merchant_id: int) -> Merchant:
    merchant = db.query(Merchant).filter(Merchant.id == merchant_id).first()
    if not merchant:
        raise HTTPException(status_code=404, detail="Merchant not found")
    return merchant


# =========================
# MERCHANT LIST / EDIT
# =========================
@router.get("/merchants", response_model=merchant_schemas.MerchantPage)
def list_merchants(
    status: Optional[merchant_schemas.MerchantStatus] = Query(None),
    kyb_status: Optional[merchant_schemas.KybStatus] = Query(None),
    search: Optional[str] = Query(None, description="Search by company name or e-mail"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    query = db.query(Merchant)

    if status:
        query = query.filter(Merchant.status == status)
    if kyb_status:
        query = query.filter(Merchant.kyb_status == kyb_status)
    if search:
        like = f"%{search}%"
        query = query.filter(or_(Merchant.company_name.ilike(like), Merchant.email.ilike(like)))

    query = query.order_by(Merchant.created_at.desc(), Merchant.id.desc())

    total = query.count()
    merchants = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": merchants, "total": total, "page": page, "page_size": page_size}


@router.patch("/merchants/{merchant_id}", response_model=merchant_schemas.MerchantResponse)
def update_merchant(
    merchant_id: int,
    payload: merchant_schemas.MerchantUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    updates = payload.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    merchant = _get_merchant(db, merchant_id)
    for key, value in updates.items():
        setattr(merchant, key, value)
    db.commit()
    db.refresh(merchant)

    write_audit_best_effort(
        db, action="merchant.updated", entity_type="merchant", entity_id=merchant.id,
        actor_id=current_admin.id, merchant_id=merchant.id,
        ip=request.client.host if request.client else None, meta=updates,
    )
    return merchant


# =========================
# KYB REVIEW
# =========================
@router.get("/kyb-review", response_model=merchant_schemas.KybQueue)
def kyb_queue(
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    pending = (
        db.query(Merchant)
        .filter(Merchant.kyb_status.in_(["in_progress", "not_started"]))
        .order_by(Merchant.created_at.asc(), Merchant.id.asc())
        .all()
    )
    approved_count = db.query(Merchant).filter(Merchant.kyb_status == "approved").count()
    return {"data": pending, "stats": {"approved_count": approved_count}}


@router.post("/kyb-review", response_model=merchant_schemas.KybDecisionResponse, response_model_exclude_none=True)
async def kyb_decide(
    payload: merchant_schemas.KybDecision,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    merchant = _get_merchant(db, payload.merchant_id)
    ip = request.client.host if request.client else None
    now = datetime.now(timezone.utc)

    if payload.action == "reject":
        merchant.kyb_status = "rejected"
        merchant.status = "suspended"
        merchant.can_ship = False
        merchant.kyb_reviewed_at = now
        merchant.kyb_rejection_reason = payload.reason or "Not specified"
        db.commit()

        write_audit_best_effort(
            db, action="kyb.rejected", entity_type="merchant", entity_id=merchant.id,
            actor_id=current_admin.id, merchant_id=merchant.id, ip=ip,
            meta={"reason": merchant.kyb_rejection_reason},
        )
        return {"success": True, "action": "rejected"}

    # Invoicing customer is created best-effort; the approval never depends on it
    if mercury_client.enabled and not merchant.mercury_customer_id:
        try:
            merchant.mercury_customer_id = await mercury_client.create_customer(
                name=merchant.company_name or merchant.email, email=merchant.email,
            )
        except Exception as e:
            logger.warning("Mercury customer for merchant %s not created: %s", merchant.id, e)

    merchant.kyb_status = "approved"
    merchant.status = "approved"
    merchant.can_ship = True
    merchant.kyb_reviewed_at = now
    merchant.kyb_rejection_reason = None
    db.commit()

    write_audit_best_effort(
        db, action="kyb.approved", entity_type="merchant", entity_id=merchant.id,
        actor_id=current_admin.id, merchant_id=merchant.id, ip=ip,
        meta={"mercury_customer_created": bool(merchant.mercury_customer_id)},
    )
    return {"success": True, "action": "approved", "mercury_customer_id": merchant.mercury_customer_id}


# =========================
# WALLET ADJUSTMENT
# =========================
@router.post("/merchants/{merchant_id}/wallet/adjust", response_model=wallet_schemas.WalletAdjustResponse)
def adjust_merchant_wallet(
    merchant_id: int,
    payload: wallet_schemas.WalletAdjustRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    merchant = _get_merchant(db, merchant_id)
    wallet = (
        db.query(WalletAccount)
        .filter(WalletAccount.merchant_id == merchant.id, WalletAccount.currency == "USD")
        .first()
    )
    if wallet is None:
        raise HTTPException(status_code=404, detail="Wallet not found")

    try:
        result = adjust_wallet_balance(
            db,
            wallet_id=wallet.id,
            merchant_id=merchant.id,
            amount_cents=payload.amount_cents,
            type="ADJUSTMENT",
            reference_type="admin_user",
            reference_id=str(current_admin.id),
            description=payload.description,
            idempotency_key=payload.idempotency_key,
        )
    except WalletNotFoundError:
        raise HTTPException(status_code=404, detail="Wallet not found")
    except WalletInsufficientBalanceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except WalletOperationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    write_audit_best_effort(
        db, action="wallet.adjusted", entity_type="wallet", entity_id=wallet.id,
        actor_id=current_admin.id, merchant_id=merchant.id,
        ip=request.client.host if request.client else None,
        meta={"amount_cents": payload.amount_cents, "description": payload.description,
              "transaction_id": result.transaction_id},
    )
    return {"new_balance_cents": result.new_balance, "transaction_id": result.transaction_id}
