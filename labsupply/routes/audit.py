# labsupply/routes/audit.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from labsupply.database import get_db
from labsupply.models.audit import AuditEvent
from labsupply.models.admin_user import AdminUser
from labsupply.utils.tokenJWT import get_current_admin

router = APIRouter(prefix="/admin/audit", tags=["Audit"])

# --- SCHEMAS ---
class AuditEventResponse(BaseModel):
    id: int
    created_at: Optional[datetime] = None
    actor_id: Optional[int] = None
    merchant_id: Optional[int] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    status: str
    ip: Optional[str] = None
    meta: Optional[Any] = None

    model_config = ConfigDict(from_attributes=True)

class AuditPage(BaseModel):
    items: List[AuditEventResponse]
    total: int
    page: int
    page_size: int

# --- ENDPOINT ---
@router.get("", response_model=AuditPage)
def list_audit_events(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Filter by action"),
    entity_type: Optional[str] = Query(None, description="Filter by entity type"),
    actor_id: Optional[int] = Query(None, description="Filter by acting admin"),
    merchant_id: Optional[int] = Query(None, description="Filter by merchant"),
    status: Optional[str] = Query(None, description="Filter by status (SUCCESS/FAIL)"),
    date_from: Optional[str] = Query(None, description="From date (YYYY-MM-DD)"),
    date_to: Optional[str] = Query(None, description="To date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    query = db.query(AuditEvent)

    if action:
        query = query.filter(AuditEvent.action.ilike(f"%{action}%"))
    if entity_type:
        query = query.filter(AuditEvent.entity_type == entity_type)
    if actor_id is not None:
        query = query.filter(AuditEvent.actor_id == actor_id)
    if merchant_id is not None:
        query = query.filter(AuditEvent.merchant_id == merchant_id)
    if status:
        query = query.filter(AuditEvent.status == status.upper())

    # Malformed dates are ignored rather than rejected
    if date_from:
        try:
            query = query.filter(AuditEvent.created_at >= datetime.fromisoformat(date_from))
        except ValueError:
            pass

    if date_to:
        try:
            dt_to_str = date_to
            if len(dt_to_str) == 10: # YYYY-MM-DD covers the whole day
                dt_to_str += " 23:59:59"
            query = query.filter(AuditEvent.created_at <= datetime.fromisoformat(dt_to_str))
        except ValueError:
            pass

    # Newest first
    query = query.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc())

    total = query.count()
    events = query.offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": events,
        "total": total,
        "page": page,
        "page_size": page_size,
    }
