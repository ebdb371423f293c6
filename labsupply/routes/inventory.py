# labsupply/routes/inventory.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, UploadFile, File, status
from fastapi.responses import Response
from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from labsupply.database import get_db
from labsupply.models.admin_user import AdminUser
from labsupply.models.inventory import Inventory
from labsupply.models.product import Product
import labsupply.schemas.product as product_schemas
from labsupply.schemas.bulk_upload import BulkUploadResponse
from labsupply.utils.audit import write_audit_best_effort
from labsupply.utils.bulk_import import BulkImporter, BatchRejected, DEFAULT_REORDER_POINT
from labsupply.utils.csv_parser import parse_csv
from labsupply.utils.row_validator import SKU_PATTERN
from labsupply.utils.tokenJWT import get_current_admin

router = APIRouter(prefix="/admin/inventory", tags=["Inventory"])
logger = logging.getLogger(__name__)

TEMPLATE_HEADER = (
    "sku,name,price_dollars,description,category,initial_stock,low_stock_threshold,"
    "weight_grams,min_order_qty,max_order_qty,active,requires_coa,tags"
)
TEMPLATE_EXAMPLE = (
    "BPC-157-5MG,BPC-157 5mg,24.99,Body Protection Compound,Peptides,100,10,5,1,,true,false,peptide;research"
)

# ---- HELPERS ----
def _norm_sku(sku: Optional[str]) -> Optional[str]:
    if sku is None:
        return None
    s = sku.strip().upper()
    return s if s else None

def _to_item(p: Product) -> product_schemas.InventoryItem:
    inv = p.inventory
    return product_schemas.InventoryItem(
        id=p.id,
        sku=p.sku,
        name=p.name,
        description=p.description,
        category=p.category or "Uncategorized",
        wholesale_price_cents=p.cost_cents,
        is_active=bool(p.active),
        requires_coa=bool(p.requires_coa),
        weight_grams=p.weight_grams,
        min_order_qty=p.min_order_qty or 1,
        max_order_qty=p.max_order_qty,
        tags=p.tags,
        on_hand=inv.on_hand if inv else 0,
        reserved=inv.reserved if inv else 0,
        incoming=inv.incoming if inv else 0,
        low_stock_threshold=inv.reorder_point if inv else DEFAULT_REORDER_POINT,
        available_qty=inv.available_qty if inv else 0,
        created_at=p.created_at,
    )

def _unexpected_failure_message(saved: int) -> str:
    if saved == 0:
        return "Bulk upload failed unexpectedly. No products were created. Please try again."
    return (
        f"Bulk upload failed unexpectedly after {saved} product(s) were saved. "
        "Review the catalog before uploading the file again."
    )


# =========================
# INVENTORY LIST
# =========================
@router.get("", response_model=product_schemas.InventoryPage)
def list_inventory(
    search: Optional[str] = Query(None, description="Search by name or SKU"),
    category: Optional[str] = Query(None),
    low_stock: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    query = db.query(Product).outerjoin(Inventory, Inventory.product_id == Product.id)

    if search:
        like = f"%{search}%"
        query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
    if category:
        query = query.filter(Product.category == category)
    if low_stock:
        available = func.coalesce(Inventory.on_hand, 0) - func.coalesce(Inventory.reserved, 0)
        query = query.filter(available <= func.coalesce(Inventory.reorder_point, DEFAULT_REORDER_POINT))

    total = query.count()
    items = query.order_by(Product.name.asc()).offset((page - 1) * page_size).limit(page_size).all()

    return {"items": [_to_item(p) for p in items], "total": total, "page": page, "page_size": page_size}


# =========================
# CSV BULK UPLOAD
# =========================
@router.get("/bulk-upload/template")
def bulk_upload_template(current_admin: AdminUser = Depends(get_current_admin)):
    content = f"{TEMPLATE_HEADER}\n{TEMPLATE_EXAMPLE}\n"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="inventory-template.csv"'},
    )


@router.post("/bulk-upload", response_model=BulkUploadResponse, response_model_exclude_none=True)
def bulk_upload(
    request: Request,
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    """Validate a catalog CSV row by row and upsert products + inventory.

    Bad rows are reported in ``results`` and do not stop the batch.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No CSV file provided. Please select a file to upload.")

    filename = file.filename or ""
    if not filename.lower().endswith(".csv") and file.content_type != "text/csv":
        raise HTTPException(status_code=400, detail="File must be a CSV file (.csv).")

    try:
        text = file.file.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded text.")
    finally:
        file.file.close()

    headers, rows = parse_csv(text)
    importer = BulkImporter(db)
    try:
        return importer.run(
            headers, rows,
            file_name=filename,
            actor_id=current_admin.id,
            ip=request.client.host if request.client else None,
        )
    except BatchRejected as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Bulk upload error")
        raise HTTPException(status_code=500, detail=_unexpected_failure_message(importer.created))


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/{sku}", response_model=product_schemas.InventoryItem)
def get_inventory_item(
    sku: str,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    product = db.query(Product).filter(Product.sku == _norm_sku(sku)).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return _to_item(product)


@router.post("", response_model=product_schemas.ProductCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    sku = _norm_sku(payload.sku)
    if not sku or not SKU_PATTERN.match(sku):
        raise HTTPException(status_code=400, detail="SKU can only contain letters, numbers, hyphens, and underscores")

    exists = db.query(Product).filter(Product.sku == sku).first()
    if exists:
        raise HTTPException(
            status_code=409,
            detail=f'A product with SKU "{payload.sku}" already exists. Use a unique SKU or edit the existing product.',
        )

    product = Product(
        sku=sku,
        name=payload.name.strip(),
        category=payload.category or None,
        cost_cents=payload.wholesale_price_cents,
        active=True,
    )
    product.inventory = Inventory(
        on_hand=payload.on_hand or 0,
        reserved=0,
        incoming=0,
        reorder_point=payload.reorder_point if payload.reorder_point is not None else DEFAULT_REORDER_POINT,
    )
    db.add(product)
    db.commit()
    db.refresh(product)

    write_audit_best_effort(
        db, action="inventory.product_created", entity_type="product", entity_id=product.id,
        actor_id=current_admin.id, ip=request.client.host if request.client else None,
        meta={"sku": product.sku, "name": product.name, "cost_cents": product.cost_cents},
    )
    return {"data": {"id": product.id, "sku": product.sku}}


# =========================
# PARTIAL UPDATE / STOCK ADJUSTMENT
# =========================
@router.patch("")
def update_inventory(
    payload: product_schemas.InventoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: AdminUser = Depends(get_current_admin),
):
    if payload.product_id is None:
        raise HTTPException(status_code=400, detail="product_id required")

    product_updates = payload.model_dump(include={"name", "category", "cost_cents", "active"}, exclude_none=True)
    inventory_updates = payload.model_dump(include={"on_hand", "reorder_point"}, exclude_none=True)
    if not product_updates and not inventory_updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    product = db.query(Product).filter(Product.id == payload.product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    for key, value in product_updates.items():
        setattr(product, key, value)

    if inventory_updates:
        if product.inventory is None:
            product.inventory = Inventory(
                on_hand=0, reserved=0, incoming=0, reorder_point=DEFAULT_REORDER_POINT,
            )
        for key, value in inventory_updates.items():
            setattr(product.inventory, key, value)

    db.commit()

    write_audit_best_effort(
        db, action="inventory.adjusted", entity_type="product", entity_id=product.id,
        actor_id=current_admin.id, ip=request.client.host if request.client else None,
        meta={**product_updates, **inventory_updates, "reason": payload.reason or "Admin adjustment"},
    )
    return {"success": True}
