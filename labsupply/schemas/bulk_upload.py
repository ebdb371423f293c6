# labsupply/schemas/bulk_upload.py
from decimal import Decimal, ROUND_HALF_UP
from pydantic import BaseModel
from typing import Optional, List


# One validated and normalized CSV line, ready to be written to the catalog
class CatalogRow(BaseModel):
    sku: str
    name: str
    price_dollars: Decimal
    description: Optional[str] = None
    category: Optional[str] = None
    initial_stock: Optional[int] = None
    low_stock_threshold: Optional[int] = None
    weight_grams: Optional[int] = None
    min_order_qty: Optional[int] = None
    max_order_qty: Optional[int] = None
    active: bool = True
    requires_coa: bool = False
    tags: Optional[List[str]] = None

    @property
    def price_cents(self) -> int:
        # round(dollars * 100), halves rounded up
        return int((self.price_dollars * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# Outcome of a single data line; `row` counts the header as line 1
class RowResult(BaseModel):
    row: int
    sku: str
    success: bool
    error: Optional[str] = None


class ImportSummary(BaseModel):
    total: int
    created: int
    failed: int


class BulkUploadResponse(BaseModel):
    summary: ImportSummary
    results: List[RowResult]
