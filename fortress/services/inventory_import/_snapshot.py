from __future__ import annotations

from dataclasses import dataclass, field

from ...extensions import db
from ...models import Category, Folder, InventoryItem


@dataclass(frozen=True)
class ExistingItem:
    id: int
    sku: str
    name: str


def name_ids(model, organization_id: int) -> dict[str, int]:
    """Lower-cased name to id for a category or folder table."""
    return {
        name.lower(): ident
        for ident, name in db.session.query(model.id, model.name).filter(
            model.organization_id == organization_id
        )
    }


@dataclass
class CatalogSnapshot:
    """Tenant catalog read once at the start of a reconciliation run.

    Not refreshed while rows are processed: writes made by other sessions
    after the snapshot is taken are not seen by this run.
    """

    organization_id: int
    categories: dict[str, int] = field(default_factory=dict)
    folders: dict[str, int] = field(default_factory=dict)
    items: dict[str, ExistingItem] = field(default_factory=dict)

    @classmethod
    def load(cls, organization_id: int) -> "CatalogSnapshot":
        items = {
            row.sku_key: ExistingItem(id=row.id, sku=row.sku, name=row.name)
            for row in db.session.query(
                InventoryItem.id,
                InventoryItem.sku,
                InventoryItem.sku_key,
                InventoryItem.name,
            ).filter(InventoryItem.organization_id == organization_id)
        }
        return cls(
            organization_id=organization_id,
            categories=name_ids(Category, organization_id),
            folders=name_ids(Folder, organization_id),
            items=items,
        )


def load_catalog_keys(organization_id: int) -> tuple[list[str], list[str]]:
    """Existing SKUs and folder names, as needed by the duplicate pre-scan."""
    skus = [
        sku
        for (sku,) in db.session.query(InventoryItem.sku)
        .filter(InventoryItem.organization_id == organization_id)
        .order_by(InventoryItem.sku)
    ]
    folder_names = [
        name
        for (name,) in db.session.query(Folder.name)
        .filter(Folder.organization_id == organization_id)
        .order_by(Folder.name)
    ]
    return skus, folder_names
