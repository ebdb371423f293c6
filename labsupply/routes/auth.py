# labsupply/routes/auth.py
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from sqlalchemy import func

from labsupply.database import get_db
from labsupply.models.admin_user import AdminUser
from labsupply.schemas import user as schemas
from labsupply.utils.hashing import verify_password
from labsupply.utils.tokenJWT import create_access_token, get_current_admin, ADMIN_SCOPE
from labsupply.utils.audit import write_audit_best_effort

router = APIRouter(prefix="/admin", tags=["Admin Auth"])


# Authenticate an admin and issue a JWT token
@router.post("/login", response_model=schemas.Token)
def admin_login(payload: schemas.LoginRequest, request: Request, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    admin = db.query(AdminUser).filter(func.lower(AdminUser.email) == email).first()
    ip = request.client.host if request.client else None

    # Validate credentials and log failure on error
    if not admin or not verify_password(payload.password, admin.password_hash) or not admin.is_active:
        write_audit_best_effort(
            db, action="admin.login", entity_type="admin_user",
            actor_id=(admin.id if admin else None), status="FAIL", ip=ip,
            meta={"email": email},
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token = create_access_token(data={"sub": admin.email, "scope": ADMIN_SCOPE, "role": admin.role})

    write_audit_best_effort(
        db, action="admin.login", entity_type="admin_user", entity_id=admin.id,
        actor_id=admin.id, ip=ip, meta={"email": admin.email},
    )
    return {"access_token": access_token, "token_type": "bearer"}


# Retrieve current authenticated admin details
@router.get("/me", response_model=schemas.AdminResponse)
def admin_me(current_admin: AdminUser = Depends(get_current_admin)):
    return current_admin
