from flask_login import UserMixin

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class Organization(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    contact_email = db.Column(db.String(256))
    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now)
    is_active = db.Column(db.Boolean, default=True)

    users = db.relationship('User', back_populates='organization')

    def __repr__(self):
        return f'<Organization {self.id}: {self.name}>'


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(120), nullable=True)
    # Bearer credential for API callers (import client, integrations)
    api_token = db.Column(db.String(128), unique=True, nullable=True, index=True)
    is_active = db.Column(db.Boolean, default=True)
    organization_id = db.Column(db.Integer, db.ForeignKey('organization.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now)

    organization = db.relationship('Organization', back_populates='users')

    def __repr__(self):
        return f'<User {self.id}: {self.username}>'
