# labsupply/routes/team.py
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from typing import Optional, Literal
from sqlalchemy import func
from sqlalchemy.orm import Session

from labsupply.database import get_db
from labsupply.models.admin_user import AdminUser
from labsupply.schemas.user import AdminCreate, AdminPage, AdminResponse, AdminUpdate
from labsupply.utils.audit import write_audit_best_effort
from labsupply.utils.hashing import get_password_hash
from labsupply.utils.tokenJWT import get_current_admin, require_super_admin

router = APIRouter(prefix="/admin/team", tags=["Admin Team"])


def _get_target(db: Session, admin_id: int) -> AdminUser:
    target = db.query(AdminUser).filter(AdminUser.id == admin_id).first()
    if not target:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin user not found.")
    return target


# List admin users with filtering and pagination
@router.get("", response_model=AdminPage)
def list_admins(
    q: Optional[str] = Query(None, description="Search by e-mail"),
    role: Optional[Literal["super_admin", "admin"]] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    query = db.query(AdminUser)

    if q:
        query = query.filter(AdminUser.email.ilike(f"%{q.lower()}%"))
    if role:
        query = query.filter(AdminUser.role == role)
    if is_active is not None:
        query = query.filter(AdminUser.is_active == is_active)

    query = query.order_by(AdminUser.created_at.asc(), AdminUser.id.asc())

    total = query.count()
    admins = query.offset((page - 1) * page_size).limit(page_size).all()

    return {"items": admins, "total": total, "page": page, "page_size": page_size}


# Add a new admin (super admin only)
@router.post("", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
def create_admin(
    payload: AdminCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(require_super_admin),
):
    email = payload.email.strip().lower()
    if db.query(AdminUser).filter(func.lower(AdminUser.email) == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="An admin with this e-mail already exists.")

    admin = AdminUser(
        email=email,
        password_hash=get_password_hash(payload.password),
        role="admin",
        first_name=payload.first_name,
        last_name=payload.last_name,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)

    write_audit_best_effort(
        db, action="admin.created", entity_type="admin_user", entity_id=admin.id,
        actor_id=current_admin.id, ip=request.client.host if request.client else None,
        meta={"email": admin.email},
    )
    return admin


# Deactivate or reactivate an admin (super admin only)
@router.patch("/{admin_id}", response_model=AdminResponse)
def update_admin(
    admin_id: int,
    payload: AdminUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(require_super_admin),
):
    target = _get_target(db, admin_id)
    if target.role == "super_admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot modify the super admin.")

    updates = payload.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No valid fields to update.")

    for key, value in updates.items():
        setattr(target, key, value)
    db.commit()
    db.refresh(target)

    write_audit_best_effort(
        db, action="admin.updated", entity_type="admin_user", entity_id=target.id,
        actor_id=current_admin.id, ip=request.client.host if request.client else None,
        meta=updates,
    )
    return target


# Remove an admin (super admin only)
@router.delete("/{admin_id}")
def delete_admin(
    admin_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(require_super_admin),
):
    target = _get_target(db, admin_id)
    if target.role == "super_admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot remove the super admin.")
    # Prevent self-deletion
    if target.id == current_admin.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot remove yourself.")

    email = target.email
    db.delete(target)
    db.commit()

    write_audit_best_effort(
        db, action="admin.removed", entity_type="admin_user", entity_id=admin_id,
        actor_id=current_admin.id, ip=request.client.host if request.client else None,
        meta={"email": email},
    )
    return {"success": True}
