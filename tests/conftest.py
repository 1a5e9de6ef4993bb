"""
Pytest configuration and shared fixtures for the inventory import tests.
"""
import csv
import io
import os
import tempfile
from dataclasses import dataclass

import pytest

from fortress import create_app
from fortress.extensions import db
from fortress.models import Folder, InventoryItem, Organization, User
from fortress.services.inventory_import import LocalBlobStore


@dataclass(frozen=True)
class TenantUser:
    """Identifiers of a user created for a test; safe to use outside an app context."""
    user_id: int
    organization_id: int
    api_token: str

    @property
    def auth_headers(self):
        return {'Authorization': f'Bearer {self.api_token}'}


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create and configure a new app instance for each test."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f'sqlite:///{db_path}',
        'WTF_CSRF_ENABLED': False,
        'SECRET_KEY': 'test-secret-key',
        'RATELIMIT_ENABLED': False,
        'IMPORT_STORAGE_DIR': str(tmp_path / 'import_uploads'),
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


def _create_tenant(app, name, token):
    with app.app_context():
        org = Organization(name=name)
        db.session.add(org)
        db.session.flush()

        user = User(
            username=f'{token}_user',
            email=f'{token}@example.com',
            api_token=token,
            organization_id=org.id,
            is_active=True,
        )
        db.session.add(user)
        db.session.commit()
        return TenantUser(user_id=user.id, organization_id=org.id, api_token=token)


@pytest.fixture
def test_user(app):
    """A customer user with an API token in its own organization."""
    return _create_tenant(app, 'Test Organization', 'token-primary')


@pytest.fixture
def other_user(app):
    """A user in a second, unrelated organization."""
    return _create_tenant(app, 'Other Organization', 'token-other')


@pytest.fixture
def storage(app):
    return LocalBlobStore(app.config['IMPORT_STORAGE_DIR'])


@pytest.fixture
def make_item(app):
    """Insert an inventory item and return its id."""
    def _make(tenant, sku, name='Widget', picking=0, overstock=0, reorder_level=0, **fields):
        with app.app_context():
            item = InventoryItem(
                sku=sku,
                sku_key=sku.lower(),
                name=name,
                picking_bin_quantity=picking,
                overstock_quantity=overstock,
                reorder_level=reorder_level,
                organization_id=tenant.organization_id,
                user_id=tenant.user_id,
                **fields,
            )
            db.session.add(item)
            db.session.commit()
            return item.id
    return _make


@pytest.fixture
def make_folder(app):
    def _make(tenant, name):
        with app.app_context():
            folder = Folder(name=name, organization_id=tenant.organization_id, user_id=tenant.user_id)
            db.session.add(folder)
            db.session.commit()
            return folder.id
    return _make


def csv_bytes(rows, columns=None):
    """Render dict rows as CSV bytes; columns default to the keys of the first row."""
    columns = list(columns or (rows[0].keys() if rows else ['sku', 'name']))
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, lineterminator='\n')
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue().encode('utf-8')


@pytest.fixture
def csv_upload(storage):
    """Store CSV rows in the import store and return the storage key."""
    def _upload(tenant, rows, filename='inventory.csv', columns=None):
        return storage.save(csv_bytes(rows, columns), filename, tenant.organization_id)
    return _upload
