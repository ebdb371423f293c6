# labsupply/utils/row_validator.py
"""Per-row validation for the catalog CSV import.

``validate_row`` checks the rules in a fixed order and stops at the first
violation, returning either a :class:`CatalogRow` or a
:class:`RowValidationError`. Callers branch on the type; nothing is raised.
"""
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional, Union

from labsupply.schemas.bulk_upload import CatalogRow

SKU_MAX_LENGTH = 50
NAME_MAX_LENGTH = 255
SKU_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
# Largest value an INTEGER column holds on every supported database
INTEGER_MAX = 2_147_483_647
MAX_PRICE_DOLLARS = Decimal(INTEGER_MAX) / 100

# Accepted column aliases, first non-empty value wins
PRICE_COLUMNS = ("price_dollars", "price", "cost_dollars", "cost")
STOCK_COLUMNS = ("initial_stock", "stock", "on_hand")
THRESHOLD_COLUMNS = ("low_stock_threshold", "reorder_point")
WEIGHT_COLUMNS = ("weight_grams", "weight")

INACTIVE_TOKENS = frozenset({"false", "0", "no", "inactive"})
TRUE_TOKENS = frozenset({"true", "1", "yes"})


@dataclass(frozen=True)
class RowValidationError:
    row_number: int
    message: str


RowValidation = Union[CatalogRow, RowValidationError]


class _Invalid(Exception):
    pass


def _value(row: Dict[str, str], columns: Iterable[str]) -> str:
    for column in columns:
        value = (row.get(column) or "").strip()
        if value:
            return value
    return ""


def _optional_int(raw: str, minimum: int, message: str) -> Optional[int]:
    if not raw:
        return None
    if not _INTEGER_PATTERN.match(raw):
        raise _Invalid(message.format(raw=raw))
    try:
        value = int(raw)
    except ValueError:
        # more digits than int() accepts
        value = minimum - 1 if raw.startswith("-") else INTEGER_MAX + 1
    if value < minimum:
        raise _Invalid(message.format(raw=raw))
    if value > INTEGER_MAX:
        raise _Invalid(f"{message.format(raw=raw)}; maximum is {INTEGER_MAX}")
    return value


def _check_sku(row: Dict[str, str]) -> str:
    sku = (row.get("sku") or "").strip()
    if not sku:
        raise _Invalid("SKU is required")
    if len(sku) > SKU_MAX_LENGTH:
        raise _Invalid(f"SKU must be {SKU_MAX_LENGTH} characters or less")
    if not SKU_PATTERN.match(sku):
        raise _Invalid("SKU can only contain letters, numbers, hyphens, and underscores")
    return sku


def _check_name(row: Dict[str, str]) -> str:
    name = (row.get("name") or "").strip()
    if not name:
        raise _Invalid("Name is required")
    if len(name) > NAME_MAX_LENGTH:
        raise _Invalid(f"Name must be {NAME_MAX_LENGTH} characters or less")
    return name


def _check_price(row: Dict[str, str]) -> Decimal:
    raw = _value(row, PRICE_COLUMNS)
    if not raw:
        raise _Invalid("Price is required (use price_dollars column)")
    try:
        price = Decimal(raw)
    except InvalidOperation:
        price = None
    if price is None or not price.is_finite() or price < 0:
        raise _Invalid(f'Invalid price "{raw}": must be a non-negative number')
    if price > MAX_PRICE_DOLLARS:
        raise _Invalid(f'Invalid price "{raw}": must be at most {MAX_PRICE_DOLLARS}')
    return price


def parse_tags(raw: str):
    tags = [t.strip() for t in raw.split(";")]
    return [t for t in tags if t] or None


def _validate(row: Dict[str, str]) -> CatalogRow:
    sku = _check_sku(row)
    name = _check_name(row)
    price = _check_price(row)

    initial_stock = _optional_int(
        _value(row, STOCK_COLUMNS), 0,
        'Invalid initial stock "{raw}": must be a non-negative integer')
    threshold = _optional_int(
        _value(row, THRESHOLD_COLUMNS), 0,
        'Invalid low stock threshold "{raw}": must be a non-negative integer')
    weight = _optional_int(
        _value(row, WEIGHT_COLUMNS), 1,
        'Invalid weight "{raw}": must be a positive integer (grams)')
    min_qty = _optional_int(
        _value(row, ("min_order_qty",)), 1,
        'Invalid min order qty "{raw}": must be at least 1')
    max_qty = _optional_int(
        _value(row, ("max_order_qty",)), 1,
        'Invalid max order qty "{raw}": must be at least 1')

    active_token = _value(row, ("active",)).lower()
    coa_token = _value(row, ("requires_coa",)).lower()

    return CatalogRow(
        sku=sku,
        name=name,
        price_dollars=price,
        description=_value(row, ("description",)) or None,
        category=_value(row, ("category",)) or None,
        initial_stock=initial_stock,
        low_stock_threshold=threshold,
        weight_grams=weight,
        min_order_qty=min_qty,
        max_order_qty=max_qty,
        active=active_token not in INACTIVE_TOKENS if active_token else True,
        requires_coa=coa_token in TRUE_TOKENS,
        tags=parse_tags(_value(row, ("tags",))),
    )


def validate_row(row: Dict[str, str], row_number: int) -> RowValidation:
    """Validate one parsed CSV line; ``row_number`` is echoed back on failure."""
    try:
        return _validate(row)
    except _Invalid as e:
        return RowValidationError(row_number=row_number, message=str(e))
