# labsupply/routes/merchant.py
from dataclasses import asdict
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from labsupply.config import settings
from labsupply.database import get_db
from labsupply.models.merchant import Merchant
from labsupply.models.wallet import WalletAccount, WalletTransaction
import labsupply.schemas.merchant as merchant_schemas
import labsupply.schemas.wallet as wallet_schemas
from labsupply.schemas.user import LoginRequest, Token
from labsupply.utils.audit import write_audit_best_effort
from labsupply.utils.hashing import get_password_hash, verify_password
from labsupply.utils.tokenJWT import create_access_token, get_current_merchant, MERCHANT_SCOPE
from labsupply.utils.wallet_ops import check_funding

router = APIRouter(prefix="/merchant", tags=["Merchant"])


def _usd_wallet(db: Session, merchant: Merchant):
    return (
        db.query(WalletAccount)
        .filter(WalletAccount.merchant_id == merchant.id, WalletAccount.currency == "USD")
        .first()
    )


# =========================
# ONBOARDING
# =========================
@router.post("/register", response_model=merchant_schemas.MerchantResponse, status_code=status.HTTP_201_CREATED)
def register_merchant(payload: merchant_schemas.MerchantRegister, request: Request, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    if db.query(Merchant).filter(func.lower(Merchant.email) == email).first():
        write_audit_best_effort(
            db, action="merchant.register", entity_type="merchant", status="FAIL",
            ip=request.client.host if request.client else None,
            meta={"email": email, "reason": "Email exists"},
        )
        raise HTTPException(status_code=400, detail="Email already registered")

    merchant = Merchant(
        email=email,
        password_hash=get_password_hash(payload.password),
        company_name=payload.company_name.strip(),
        contact_name=payload.contact_name,
        phone=payload.phone,
        website_url=payload.website_url,
        status="pending",
        kyb_status="not_started",
        can_ship=False,
    )
    # Every merchant starts with an empty prepaid USD wallet
    merchant.wallets.append(WalletAccount(currency="USD", balance_cents=0, reserved_cents=0))
    db.add(merchant)
    db.commit()
    db.refresh(merchant)

    write_audit_best_effort(
        db, action="merchant.register", entity_type="merchant", entity_id=merchant.id,
        merchant_id=merchant.id, ip=request.client.host if request.client else None,
        meta={"email": merchant.email},
    )
    return merchant


@router.post("/login", response_model=Token)
def merchant_login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    merchant = db.query(Merchant).filter(func.lower(Merchant.email) == email).first()

    if not merchant or not verify_password(payload.password, merchant.password_hash):
        write_audit_best_effort(
            db, action="merchant.login", entity_type="merchant",
            merchant_id=(merchant.id if merchant else None), status="FAIL",
            ip=request.client.host if request.client else None, meta={"email": email},
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": merchant.email, "scope": MERCHANT_SCOPE})
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=merchant_schemas.MerchantResponse)
def merchant_me(current_merchant: Merchant = Depends(get_current_merchant)):
    return current_merchant


@router.post("/kyb", response_model=merchant_schemas.MerchantResponse)
def submit_kyb(
    payload: merchant_schemas.KybSubmission,
    request: Request,
    db: Session = Depends(get_db),
    current_merchant: Merchant = Depends(get_current_merchant),
):
    # Resubmission is allowed only after a rejection
    if current_merchant.kyb_status not in ("not_started", "rejected"):
        raise HTTPException(
            status_code=409,
            detail=f"KYB cannot be submitted while it is {current_merchant.kyb_status}.",
        )

    current_merchant.legal_business_name = payload.legal_business_name.strip()
    current_merchant.ein = payload.ein.strip()
    current_merchant.business_address = payload.business_address.strip()
    current_merchant.kyb_status = "in_progress"
    current_merchant.kyb_submitted_at = datetime.now(timezone.utc)
    current_merchant.kyb_rejection_reason = None
    db.commit()
    db.refresh(current_merchant)

    write_audit_best_effort(
        db, action="kyb.submitted", entity_type="merchant", entity_id=current_merchant.id,
        merchant_id=current_merchant.id, ip=request.client.host if request.client else None,
        meta={"legal_business_name": current_merchant.legal_business_name},
    )
    return current_merchant


# =========================
# WALLET
# =========================
@router.get("/wallet", response_model=wallet_schemas.WalletResponse)
def get_wallet(
    db: Session = Depends(get_db),
    current_merchant: Merchant = Depends(get_current_merchant),
):
    wallet = _usd_wallet(db, current_merchant)
    reserve = settings.COMPLIANCE_RESERVE_CENTS
    if wallet is None:
        return {
            "currency": "USD", "balance_cents": 0, "reserved_cents": 0, "available_cents": 0,
            "compliance_reserve_cents": reserve, "spendable_cents": 0,
        }

    available = wallet.balance_cents - wallet.reserved_cents
    return {
        "currency": wallet.currency,
        "balance_cents": wallet.balance_cents,
        "reserved_cents": wallet.reserved_cents,
        "available_cents": available,
        "compliance_reserve_cents": reserve,
        "spendable_cents": max(0, available - reserve),
    }


@router.get("/wallet/transactions", response_model=wallet_schemas.WalletTransactionPage)
def list_wallet_transactions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_merchant: Merchant = Depends(get_current_merchant),
):
    query = (
        db.query(WalletTransaction)
        .filter(WalletTransaction.merchant_id == current_merchant.id)
        .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id.desc())
    )
    total = query.count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total": total, "page": page, "page_size": page_size}


@router.post("/wallet/funding-check", response_model=wallet_schemas.FundingCheckResponse)
def funding_check(
    payload: wallet_schemas.FundingCheckRequest,
    db: Session = Depends(get_db),
    current_merchant: Merchant = Depends(get_current_merchant),
):
    """Tell the merchant whether an order of ``amount_cents`` would be funded
    while keeping the compliance reserve in the wallet."""
    result = check_funding(_usd_wallet(db, current_merchant), payload.amount_cents)
    return asdict(result)
