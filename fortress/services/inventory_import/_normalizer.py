"""Row normalization: raw parsed rows into typed candidate records.

Identity fields (``sku``, ``name``) fail loud. Quantitative fields degrade
to their defaults when absent, negative, or not numeric.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from ._fields import DEFAULT_CATEGORY, DEFAULT_FOLDER, HEADER_ALIASES
from .errors import RowValidationError

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_DECIMAL = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class CandidateRow:
    row_number: int
    sku: str
    name: str
    category: str = DEFAULT_CATEGORY
    primary_folder_name: str = DEFAULT_FOLDER
    picking_folder_name: str = DEFAULT_FOLDER
    picking_quantity: int = 0
    overstock_quantity: int = 0
    unit_cost: Decimal = Decimal("0.00")
    retail_price: Decimal = Decimal("0.00")
    reorder_level: int = 0
    picking_reorder_level: int = 0
    committed_stock: int = 0
    incoming_stock: int = 0
    description: Optional[str] = None
    image_url: Optional[str] = None
    vendor_id: Optional[str] = None
    barcode_url: Optional[str] = None
    tags: Optional[str] = None
    notes: Optional[str] = None
    auto_reorder_enabled: bool = False
    auto_reorder_quantity: int = 0

    @property
    def sku_key(self) -> str:
        return self.sku.lower()

    @property
    def total_quantity(self) -> int:
        return self.picking_quantity + self.overstock_quantity

    @property
    def folder_names(self) -> tuple[str, str]:
        return (self.primary_folder_name, self.picking_folder_name)


def canonical_row(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Map legacy header aliases onto canonical names; canonical names win."""
    row: dict[str, Any] = {}
    for key, value in raw.items():
        if key is None:
            continue
        name = str(key).strip()
        canonical = HEADER_ALIASES.get(name, name)
        if canonical != name and canonical in raw:
            continue
        row[canonical] = value
    return row


def normalize_row(raw: Mapping[str, Any], row_number: int) -> CandidateRow:
    """Build a :class:`CandidateRow` or raise :class:`RowValidationError`."""
    row = canonical_row(raw)
    name = clean_string(row.get("name"))
    sku = clean_string(row.get("sku"))

    if not name:
        raise RowValidationError(
            row_number, "name", f"Row {row_number} (SKU: {sku or 'N/A'}): Item Name is required."
        )
    if not sku:
        raise RowValidationError(
            row_number, "sku", f"Row {row_number} (Item: {name}): SKU is required."
        )

    primary_folder = clean_string(row.get("folderName"))
    picking_folder = clean_string(row.get("pickingBinFolderName"))

    return CandidateRow(
        row_number=row_number,
        sku=sku,
        name=name,
        category=clean_string(row.get("category")) or DEFAULT_CATEGORY,
        primary_folder_name=primary_folder or picking_folder or DEFAULT_FOLDER,
        picking_folder_name=picking_folder or primary_folder or DEFAULT_FOLDER,
        picking_quantity=lenient_int(row.get("pickingBinQuantity")),
        overstock_quantity=lenient_int(row.get("overstockQuantity")),
        unit_cost=lenient_decimal(row.get("unitCost")),
        retail_price=lenient_decimal(row.get("retailPrice")),
        reorder_level=lenient_int(row.get("reorderLevel")),
        picking_reorder_level=lenient_int(row.get("pickingReorderLevel")),
        committed_stock=lenient_int(row.get("committedStock")),
        incoming_stock=lenient_int(row.get("incomingStock")),
        description=clean_string(row.get("description")),
        image_url=clean_string(row.get("imageUrl")),
        vendor_id=clean_string(row.get("vendorId")),
        barcode_url=clean_string(row.get("barcodeUrl")) or sku,
        tags=clean_string(row.get("tags")),
        notes=clean_string(row.get("notes")),
        auto_reorder_enabled=(clean_string(row.get("autoReorderEnabled")) or "").lower() == "true",
        auto_reorder_quantity=lenient_int(row.get("autoReorderQuantity")),
    )


def clean_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        # Spreadsheet cells hand back 1001.0 for a typed 1001
        value = int(value)
    text = str(value).strip()
    return text or None


def lenient_int(value: Any, default: int = 0) -> int:
    """Leading base-10 integer, or ``default`` when missing, malformed, or negative."""
    text = clean_string(value)
    if text is None:
        return default
    match = _LEADING_INT.match(text)
    if not match:
        return default
    parsed = int(match.group(1))
    return parsed if parsed >= 0 else default


def lenient_decimal(value: Any, default: Decimal = Decimal("0.00")) -> Decimal:
    text = clean_string(value)
    if text is None:
        return default
    match = _LEADING_DECIMAL.match(text)
    if not match:
        return default
    try:
        parsed = Decimal(match.group(1))
        if parsed < 0:
            return default
        return parsed.quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return default
