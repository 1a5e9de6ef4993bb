"""Models package - imports all models for the application"""
from ..extensions import db
from .mixins import ScopedModelMixin

# Import in dependency order for table creation
from .models import Organization, User
from .category import Category, Folder, DEFAULT_REFERENCE_COLOR
from .inventory import (
    InventoryItem,
    StockMovement,
    LedgerInvariantError,
    derive_stock_status,
    STATUS_IN_STOCK,
    STATUS_LOW_STOCK,
    STATUS_OUT_OF_STOCK,
    MOVEMENT_ADD,
    MOVEMENT_SUBTRACT,
)

__all__ = [
    'db',
    'ScopedModelMixin',
    'Organization',
    'User',
    'Category',
    'Folder',
    'DEFAULT_REFERENCE_COLOR',
    'InventoryItem',
    'StockMovement',
    'LedgerInvariantError',
    'derive_stock_status',
    'STATUS_IN_STOCK',
    'STATUS_LOW_STOCK',
    'STATUS_OUT_OF_STOCK',
    'MOVEMENT_ADD',
    'MOVEMENT_SUBTRACT',
]
