from sqlalchemy import event

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .mixins import ScopedModelMixin

STATUS_IN_STOCK = 'In Stock'
STATUS_LOW_STOCK = 'Low Stock'
STATUS_OUT_OF_STOCK = 'Out of Stock'

MOVEMENT_ADD = 'add'
MOVEMENT_SUBTRACT = 'subtract'


class LedgerInvariantError(ValueError):
    """Raised when a stock movement would break the append-only ledger rules."""


def derive_stock_status(quantity, reorder_level) -> str:
    """In Stock above the reorder level, Low Stock at or below it, Out of Stock at zero."""
    quantity = quantity or 0
    if quantity > (reorder_level or 0):
        return STATUS_IN_STOCK
    if quantity > 0:
        return STATUS_LOW_STOCK
    return STATUS_OUT_OF_STOCK


class InventoryItem(ScopedModelMixin, db.Model):
    """Stock-keeping unit owned by one organization.

    ``quantity`` and ``status`` are always derived from the picking bin and
    overstock counts; see the mapper events below.
    """
    __tablename__ = 'inventory_item'
    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(128), nullable=False)
    # Lower-cased sku; identity key within the organization
    sku_key = db.Column(db.String(128), nullable=False)
    name = db.Column(db.String(256), nullable=False, index=True)
    description = db.Column(db.Text)

    category = db.Column(db.String(128), nullable=False, default='Uncategorized')
    category_id = db.Column(db.Integer, db.ForeignKey('category.id'), nullable=True)

    picking_bin_quantity = db.Column(db.Integer, nullable=False, default=0)
    overstock_quantity = db.Column(db.Integer, nullable=False, default=0)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=0)
    picking_reorder_level = db.Column(db.Integer, nullable=False, default=0)
    committed_stock = db.Column(db.Integer, nullable=False, default=0)
    incoming_stock = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(32), nullable=False, default=STATUS_OUT_OF_STOCK)

    unit_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    retail_price = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    folder_id = db.Column(db.Integer, db.ForeignKey('inventory_folder.id'), nullable=True)
    picking_folder_id = db.Column(db.Integer, db.ForeignKey('inventory_folder.id'), nullable=True)

    image_url = db.Column(db.String(512))
    vendor_id = db.Column(db.String(128))
    barcode_url = db.Column(db.String(512))
    tags = db.Column(db.Text)
    notes = db.Column(db.Text)
    auto_reorder_enabled = db.Column(db.Boolean, nullable=False, default=False)
    auto_reorder_quantity = db.Column(db.Integer, nullable=False, default=0)

    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now)
    last_updated = db.Column(db.DateTime, default=TimezoneUtils.utc_now)

    __table_args__ = (
        db.UniqueConstraint('organization_id', 'sku_key', name='_inventory_org_sku_uc'),
    )

    folder = db.relationship('Folder', foreign_keys=[folder_id])
    picking_folder = db.relationship('Folder', foreign_keys=[picking_folder_id])

    def __repr__(self):
        return f'<InventoryItem {self.id}: {self.sku} qty={self.quantity}>'


def _derive_item_fields(target) -> None:
    target.quantity = (target.picking_bin_quantity or 0) + (target.overstock_quantity or 0)
    target.status = derive_stock_status(target.quantity, target.reorder_level)
    if target.sku:
        target.sku_key = target.sku.strip().lower()
    target.last_updated = TimezoneUtils.utc_now()


@event.listens_for(InventoryItem, "before_insert")
def _derive_before_insert(mapper, connection, target):
    _derive_item_fields(target)


@event.listens_for(InventoryItem, "before_update")
def _derive_before_update(mapper, connection, target):
    _derive_item_fields(target)


class StockMovement(ScopedModelMixin, db.Model):
    """Append-only ledger of quantity changes."""
    __tablename__ = 'stock_movement'
    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey('inventory_item.id'), nullable=False, index=True)
    item_name = db.Column(db.String(256), nullable=False)
    type = db.Column(db.String(16), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    old_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text)
    folder_id = db.Column(db.Integer, db.ForeignKey('inventory_folder.id'), nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    timestamp = db.Column(db.DateTime, default=TimezoneUtils.utc_now, nullable=False)

    item = db.relationship('InventoryItem', backref=db.backref('movements', order_by='StockMovement.id'))

    def __repr__(self):
        return f'<StockMovement {self.id}: {self.type} {self.amount} ({self.old_quantity}->{self.new_quantity})>'


@event.listens_for(StockMovement, "before_insert")
def _check_movement_invariant(mapper, connection, target):
    if target.type not in (MOVEMENT_ADD, MOVEMENT_SUBTRACT):
        raise LedgerInvariantError(f"Unknown stock movement type {target.type!r}")
    if target.amount is None or target.amount <= 0:
        raise LedgerInvariantError("Stock movement amount must be a positive integer")
    sign = 1 if target.type == MOVEMENT_ADD else -1
    if target.new_quantity != target.old_quantity + sign * target.amount:
        raise LedgerInvariantError(
            f"Stock movement {target.type} {target.amount} does not move "
            f"{target.old_quantity} to {target.new_quantity}"
        )


@event.listens_for(StockMovement, "before_update")
def _refuse_movement_update(mapper, connection, target):
    raise LedgerInvariantError("Stock movements are append-only")


@event.listens_for(StockMovement, "before_delete")
def _refuse_movement_delete(mapper, connection, target):
    raise LedgerInvariantError("Stock movements are append-only")
