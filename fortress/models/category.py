from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .mixins import ScopedModelMixin

DEFAULT_REFERENCE_COLOR = '#CCCCCC'


class Category(ScopedModelMixin, db.Model):
    """Inventory category, referenced by name from inventory rows."""
    __tablename__ = 'category'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    color = db.Column(db.String(7), default=DEFAULT_REFERENCE_COLOR)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now)

    __table_args__ = (
        db.UniqueConstraint('organization_id', 'name', name='_category_org_name_uc'),
    )


class Folder(ScopedModelMixin, db.Model):
    """Storage folder (warehouse location or picking bin)."""
    __tablename__ = 'inventory_folder'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    color = db.Column(db.String(7), default=DEFAULT_REFERENCE_COLOR)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now)

    __table_args__ = (
        db.UniqueConstraint('organization_id', 'name', name='_folder_org_name_uc'),
    )

    def __repr__(self):
        return f'<Folder {self.id}: {self.name}>'
