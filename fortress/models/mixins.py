from sqlalchemy.orm import declared_attr

from ..extensions import db


class ScopedModelMixin:
    """Rows owned by one organization. Every query in the import path goes through
    ``for_organization`` so a tenant never sees another tenant's items or folders."""

    @declared_attr
    def organization_id(cls):
        return db.Column(db.Integer, db.ForeignKey('organization.id'), nullable=False, index=True)

    @classmethod
    def for_organization(cls, org_id):
        return cls.query.filter_by(organization_id=org_id)
