# labsupply/utils/bulk_import.py
"""Catalog bulk import: applies validated CSV rows to products and inventory.

Rows are processed strictly in file order with one commit per row. A bad row
(validation or database error) is reported and skipped; earlier rows stay
committed. There is no transaction spanning the batch.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from labsupply.config import settings
from labsupply.models.inventory import Inventory
from labsupply.models.product import Product
from labsupply.schemas.bulk_upload import BulkUploadResponse, CatalogRow, ImportSummary, RowResult
from labsupply.utils.audit import write_audit_best_effort
from labsupply.utils.row_validator import RowValidationError, validate_row

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("sku", "name")
DEFAULT_REORDER_POINT = 10
# Line 1 of the file is the header
FIRST_DATA_LINE = 2


class BatchRejected(Exception):
    """The upload as a whole is unusable; no row has been processed."""


def check_batch(headers: List[str], rows: List[Dict[str, str]], max_rows: int) -> None:
    if not headers or not rows:
        raise BatchRejected(
            "CSV file is empty or has no data rows. Ensure the file has a header row and at least one data row."
        )
    if any(column not in headers for column in REQUIRED_COLUMNS):
        raise BatchRejected(
            f'CSV must include "sku" and "name" columns. Found columns: {", ".join(headers)}. '
            "Download the template for the correct format."
        )
    if len(rows) > max_rows:
        raise BatchRejected(
            f"CSV contains {len(rows)} rows, but the maximum is {max_rows}. Please split into smaller files."
        )


def upsert_catalog_row(db: Session, row: CatalogRow) -> Product:
    """Insert or update the product keyed by upper-cased SKU, then its inventory record.

    Only flushes; committing is the caller's decision.
    """
    sku = row.sku.upper()
    product = db.query(Product).filter(Product.sku == sku).first()
    if product is None:
        product = Product(sku=sku)
        db.add(product)

    product.name = row.name
    product.description = row.description
    product.category = row.category
    product.cost_cents = row.price_cents
    product.active = row.active
    product.requires_coa = row.requires_coa
    product.weight_grams = row.weight_grams
    product.min_order_qty = row.min_order_qty if row.min_order_qty is not None else 1
    product.max_order_qty = row.max_order_qty
    product.tags = row.tags
    db.flush()

    inventory = db.query(Inventory).filter(Inventory.product_id == product.id).first()
    if inventory is None:
        inventory = Inventory(product_id=product.id, reserved=0, incoming=0)
        db.add(inventory)
    # reserved and incoming of an existing record are left alone
    inventory.on_hand = row.initial_stock if row.initial_stock is not None else 0
    inventory.reorder_point = (
        row.low_stock_threshold if row.low_stock_threshold is not None else DEFAULT_REORDER_POINT
    )
    db.flush()
    return product


class BulkImporter:
    """Runs one upload. ``results`` grows as rows are processed, so a caller
    handling an unexpected exception can still tell how far the import got."""

    def __init__(self, db: Session, max_rows: Optional[int] = None):
        self.db = db
        self.max_rows = max_rows if max_rows is not None else settings.BULK_UPLOAD_MAX_ROWS
        self.results: List[RowResult] = []

    @property
    def created(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def run(self, headers: List[str], rows: List[Dict[str, str]], *, file_name: Optional[str] = None,
            actor_id: Optional[int] = None, ip: Optional[str] = None) -> BulkUploadResponse:
        check_batch(headers, rows, self.max_rows)

        for index, raw in enumerate(rows):
            self._process_row(index + FIRST_DATA_LINE, raw)

        logger.info(
            "Bulk upload %s processed: total=%d created=%d failed=%d",
            file_name, len(rows), self.created, self.failed,
        )
        write_audit_best_effort(
            self.db,
            action="inventory.bulk_upload",
            entity_type="product",
            actor_id=actor_id,
            ip=ip,
            meta={"file_name": file_name, "total_rows": len(rows), "created": self.created, "failed": self.failed},
        )
        return self.report(len(rows))

    def _process_row(self, row_number: int, raw: Dict[str, str]) -> None:
        outcome = validate_row(raw, row_number)
        if isinstance(outcome, RowValidationError):
            self.results.append(
                RowResult(row=row_number, sku=raw.get("sku") or "?", success=False, error=outcome.message)
            )
            return

        try:
            upsert_catalog_row(self.db, outcome)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            message = str(getattr(e, "orig", None) or e) or "Database insert failed"
            logger.warning("Bulk upload row %d (%s) failed to persist: %s", row_number, outcome.sku, message)
            self.results.append(RowResult(row=row_number, sku=outcome.sku, success=False, error=message))
            return

        self.results.append(RowResult(row=row_number, sku=outcome.sku, success=True))

    def report(self, total: int) -> BulkUploadResponse:
        return BulkUploadResponse(
            summary=ImportSummary(total=total, created=self.created, failed=self.failed),
            results=list(self.results),
        )
