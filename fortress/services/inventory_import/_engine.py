"""Server-side reconciliation of an uploaded inventory table.

Rows are reduced one at a time, in file order, into staged inserts and
staged updates. Inserts are flushed as a single batch; updates are written
one item at a time so a failing item does not affect the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from ...extensions import db
from ...models import MOVEMENT_ADD, InventoryItem, StockMovement
from ._fields import FIRST_DATA_LINE
from ._normalizer import CandidateRow, normalize_row
from ._parser import SUPPORTED_EXTENSIONS, parse_table
from ._references import ReferenceResolver
from ._reporter import OUTCOME_ERROR, OUTCOME_INSERTED, OUTCOME_SKIPPED, OUTCOME_UPDATED, ImportResult
from ._snapshot import CatalogSnapshot, ExistingItem
from ._storage import BlobStore
from .errors import ImportWriteError, ReferenceCreationError, RowValidationError, TableParseError

logger = logging.getLogger(__name__)

ADD_TO_STOCK_REASON = "CSV Bulk Import - Added to stock"


class DuplicatePolicy(str, Enum):
    SKIP = "skip"
    ADD_TO_STOCK = "add_to_stock"
    UPDATE = "update"

    @classmethod
    def parse(cls, value: Any) -> "DuplicatePolicy":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for policy in cls:
            if policy.value == text:
                return policy
        choices = ", ".join(policy.value for policy in cls)
        raise ValueError(f"Invalid duplicate policy '{value}'. Expected one of: {choices}.")


@dataclass(frozen=True)
class ResolvedRow:
    candidate: CandidateRow
    category_id: int
    folder_id: int
    picking_folder_id: int

    @property
    def row_number(self) -> int:
        return self.candidate.row_number

    @property
    def sku(self) -> str:
        return self.candidate.sku


@dataclass
class StagedUpdate:
    existing: ExistingItem
    rows: list[ResolvedRow] = field(default_factory=list)


def _label(row_number: int, sku: Optional[str]) -> str:
    return f"Row {row_number} (SKU: {sku or 'N/A'})"


class ReconciliationEngine:
    """Row reducer for one reconciliation run.

    ``snapshot`` is read once by the caller. Nothing raised while processing
    a single row escapes :meth:`run`; it is recorded against that row.
    """

    def __init__(
        self,
        *,
        organization_id: int,
        user_id: int,
        policy: DuplicatePolicy,
        snapshot: CatalogSnapshot,
        resolver: Optional[ReferenceResolver] = None,
    ):
        self.organization_id = organization_id
        self.user_id = user_id
        self.policy = DuplicatePolicy.parse(policy)
        self.snapshot = snapshot
        self.resolver = resolver or ReferenceResolver(
            organization_id=organization_id,
            user_id=user_id,
            categories=snapshot.categories,
            folders=snapshot.folders,
        )
        self.result = ImportResult()
        self._inserts: dict[str, ResolvedRow] = {}
        self._updates: dict[int, StagedUpdate] = {}

    def run(self, raw_rows: Sequence[Mapping[str, Any]]) -> ImportResult:
        for index, raw in enumerate(raw_rows):
            self.reduce_row(raw, index + FIRST_DATA_LINE)

        self._flush_inserts()
        self._apply_updates()

        self.result.created_categories = list(self.resolver.created_categories)
        self.result.created_folders = list(self.resolver.created_folders)
        return self.result

    def reduce_row(self, raw: Mapping[str, Any], row_number: int) -> None:
        sku = None
        try:
            candidate = normalize_row(raw, row_number)
            sku = candidate.sku
            self._stage(candidate)
        except RowValidationError as exc:
            logger.warning("Import row rejected: %s", exc)
            self.result.record(row_number, sku, OUTCOME_ERROR, str(exc))
        except ReferenceCreationError as exc:
            logger.warning("Import row %s reference failure: %s", row_number, exc)
            self.result.record(row_number, sku, OUTCOME_ERROR, f"{_label(row_number, sku)}: {exc}")
        except Exception as exc:
            logger.exception("Unexpected error processing import row %s", row_number)
            db.session.rollback()
            self.result.record(row_number, sku, OUTCOME_ERROR, f"{_label(row_number, sku)}: Unexpected error: {exc}")

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------
    def _stage(self, candidate: CandidateRow) -> None:
        resolved = ResolvedRow(
            candidate=candidate,
            category_id=self.resolver.resolve_category(candidate.category),
            folder_id=self.resolver.resolve_folder(candidate.primary_folder_name),
            picking_folder_id=self.resolver.resolve_folder(candidate.picking_folder_name),
        )

        existing = self.snapshot.items.get(candidate.sku_key)
        if existing is None:
            self._stage_insert(resolved)
        elif self.policy is DuplicatePolicy.SKIP:
            self.result.record(
                candidate.row_number,
                candidate.sku,
                OUTCOME_SKIPPED,
                f"{_label(candidate.row_number, candidate.sku)}: Skipped duplicate of existing item '{existing.name}'.",
            )
        else:
            staged = self._updates.setdefault(existing.id, StagedUpdate(existing=existing))
            staged.rows.append(resolved)

    def _stage_insert(self, resolved: ResolvedRow) -> None:
        key = resolved.candidate.sku_key
        previous = self._inserts.get(key)
        if previous is not None:
            message = (
                f"{_label(resolved.row_number, resolved.sku)}: SKU also appears on row "
                f"{previous.row_number}; the values from row {resolved.row_number} are used."
            )
            logger.warning("Repeated new SKU in import file: %s", message)
            self.result.warnings.append(message)
        self._inserts[key] = resolved

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def _flush_inserts(self) -> None:
        if not self._inserts:
            return

        staged = list(self._inserts.values())
        try:
            db.session.add_all([self._build_item(row) for row in staged])
            db.session.commit()
        except Exception as exc:
            # Includes driver errors SQLAlchemy does not wrap, e.g. OverflowError
            db.session.rollback()
            reason = getattr(exc, "orig", None) or exc
            logger.warning("Batched insert of %s inventory items failed: %s", len(staged), reason, exc_info=True)
            for row in staged:
                self.result.record(
                    row.row_number,
                    row.sku,
                    OUTCOME_ERROR,
                    f"{_label(row.row_number, row.sku)}: Failed to insert new items: {reason}",
                )
            return

        self.result.inserted_count += len(staged)
        for row in staged:
            self.result.record(row.row_number, row.sku, OUTCOME_INSERTED)

    def _apply_updates(self) -> None:
        for staged in self._updates.values():
            try:
                self._apply_update(staged)
                db.session.commit()
            except Exception as exc:
                db.session.rollback()
                logger.warning(
                    "Update of inventory item %s failed: %s",
                    staged.existing.id,
                    exc,
                    exc_info=not isinstance(exc, ImportWriteError),
                )
                for row in staged.rows:
                    self.result.record(
                        row.row_number,
                        row.sku,
                        OUTCOME_ERROR,
                        f"{_label(row.row_number, row.sku)}: Failed to update item: {exc}",
                    )
                continue

            self.result.updated_count += 1
            for row in staged.rows:
                self.result.record(row.row_number, row.sku, OUTCOME_UPDATED)

    def _apply_update(self, staged: StagedUpdate) -> None:
        item = db.session.get(InventoryItem, staged.existing.id)
        if item is None or item.organization_id != self.organization_id:
            raise ImportWriteError(f"Inventory item '{staged.existing.sku}' no longer exists.")

        if self.policy is DuplicatePolicy.UPDATE:
            if len(staged.rows) > 1:
                rows = ", ".join(str(row.row_number) for row in staged.rows)
                logger.warning("SKU %s repeated on rows %s; last row wins", staged.existing.sku, rows)
            self._overwrite(item, staged.rows[-1])
            return

        for row in staged.rows:
            self._add_to_stock(item, row)

    def _overwrite(self, item: InventoryItem, row: ResolvedRow) -> None:
        candidate = row.candidate
        item.sku = candidate.sku
        item.name = candidate.name
        item.description = candidate.description
        item.category = candidate.category
        item.category_id = row.category_id
        item.picking_bin_quantity = candidate.picking_quantity
        item.overstock_quantity = candidate.overstock_quantity
        item.reorder_level = candidate.reorder_level
        item.picking_reorder_level = candidate.picking_reorder_level
        item.committed_stock = candidate.committed_stock
        item.incoming_stock = candidate.incoming_stock
        item.unit_cost = candidate.unit_cost
        item.retail_price = candidate.retail_price
        item.folder_id = row.folder_id
        item.picking_folder_id = row.picking_folder_id
        item.image_url = candidate.image_url
        item.vendor_id = candidate.vendor_id
        item.barcode_url = candidate.barcode_url
        item.tags = candidate.tags
        item.notes = candidate.notes
        item.auto_reorder_enabled = candidate.auto_reorder_enabled
        item.auto_reorder_quantity = candidate.auto_reorder_quantity

    def _add_to_stock(self, item: InventoryItem, row: ResolvedRow) -> None:
        candidate = row.candidate
        old_quantity = (item.picking_bin_quantity or 0) + (item.overstock_quantity or 0)
        item.picking_bin_quantity = (item.picking_bin_quantity or 0) + candidate.picking_quantity
        item.overstock_quantity = (item.overstock_quantity or 0) + candidate.overstock_quantity
        amount = candidate.total_quantity
        if amount <= 0:
            return

        db.session.add(
            StockMovement(
                item=item,
                item_name=item.name,
                type=MOVEMENT_ADD,
                amount=amount,
                old_quantity=old_quantity,
                new_quantity=old_quantity + amount,
                reason=ADD_TO_STOCK_REASON,
                folder_id=row.folder_id,
                organization_id=self.organization_id,
                user_id=self.user_id,
            )
        )

    def _build_item(self, row: ResolvedRow) -> InventoryItem:
        candidate = row.candidate
        return InventoryItem(
            sku=candidate.sku,
            sku_key=candidate.sku_key,
            name=candidate.name,
            description=candidate.description,
            category=candidate.category,
            category_id=row.category_id,
            picking_bin_quantity=candidate.picking_quantity,
            overstock_quantity=candidate.overstock_quantity,
            quantity=candidate.total_quantity,
            reorder_level=candidate.reorder_level,
            picking_reorder_level=candidate.picking_reorder_level,
            committed_stock=candidate.committed_stock,
            incoming_stock=candidate.incoming_stock,
            unit_cost=candidate.unit_cost,
            retail_price=candidate.retail_price,
            folder_id=row.folder_id,
            picking_folder_id=row.picking_folder_id,
            image_url=candidate.image_url,
            vendor_id=candidate.vendor_id,
            barcode_url=candidate.barcode_url,
            tags=candidate.tags,
            notes=candidate.notes,
            auto_reorder_enabled=candidate.auto_reorder_enabled,
            auto_reorder_quantity=candidate.auto_reorder_quantity,
            organization_id=self.organization_id,
            user_id=self.user_id,
        )


def reconcile(
    file_path: str,
    organization_id: int,
    user_id: int,
    duplicate_policy,
    *,
    storage: BlobStore,
    max_rows: Optional[int] = None,
    allowed_extensions: Sequence[str] = SUPPORTED_EXTENSIONS,
) -> ImportResult:
    """Download, parse and reconcile one uploaded table for an organization.

    Raises :class:`TableParseError` when the file cannot be read or parsed;
    row level failures are returned in ``ImportResult.errors``. The stored
    file is removed once it has been downloaded.
    """
    policy = DuplicatePolicy.parse(duplicate_policy)
    logger.info(
        "Reconciling %s for organization %s (user %s, duplicates=%s)",
        file_path,
        organization_id,
        user_id,
        policy.value,
    )

    try:
        content = storage.read(file_path)
    except OSError as exc:
        raise TableParseError(f"Could not download uploaded file '{file_path}': {exc}") from exc

    try:
        raw_rows = parse_table(content, file_path, max_rows=max_rows, allowed_extensions=allowed_extensions)
        snapshot = CatalogSnapshot.load(organization_id)
        engine = ReconciliationEngine(
            organization_id=organization_id,
            user_id=user_id,
            policy=policy,
            snapshot=snapshot,
        )
        result = engine.run(raw_rows)
    finally:
        try:
            storage.delete(file_path)
        except OSError:
            logger.warning("Could not remove uploaded import file %s", file_path, exc_info=True)

    logger.info(
        "Reconciliation finished for organization %s: inserted=%s updated=%s skipped=%s errors=%s",
        organization_id,
        result.inserted_count,
        result.updated_count,
        result.skipped_count,
        len(result.errors),
    )
    return result
