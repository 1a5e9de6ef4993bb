import io

import pytest
from sqlalchemy.exc import OperationalError

from fortress import create_app
from fortress.extensions import db
from fortress.models import InventoryItem, Organization, User
from fortress.services.inventory_import import engine_locks

RECONCILE_URL = '/api/inventory/imports/reconcile'
UPLOAD_URL = '/api/inventory/imports/uploads'


def _upload(client, tenant, content, filename='inventory.csv', **form):
    data = dict(form)
    data['file'] = (io.BytesIO(content), filename)
    return client.post(UPLOAD_URL, data=data, headers=tenant.auth_headers, content_type='multipart/form-data')


def _reconcile_body(tenant, file_path, policy='skip', **overrides):
    body = {
        'filePath': file_path,
        'organizationId': tenant.organization_id,
        'userId': tenant.user_id,
        'actionForDuplicates': policy,
    }
    body.update(overrides)
    return body


class TestAuthentication:
    def test_missing_token_is_rejected(self, client):
        response = client.post(RECONCILE_URL, json={})

        assert response.status_code == 401
        assert response.get_json() == {'error': 'Authentication required'}

    def test_unknown_token_is_rejected(self, client, test_user):
        response = client.get('/api/inventory/imports/catalog', headers={'Authorization': 'Bearer not-a-token'})

        assert response.status_code == 401

    def test_inactive_organization_is_rejected(self, app, client, test_user):
        with app.app_context():
            db.session.get(Organization, test_user.organization_id).is_active = False
            db.session.commit()

        response = client.get('/api/inventory/imports/catalog', headers=test_user.auth_headers)

        assert response.status_code == 401


class TestReconcileValidation:
    def test_missing_parameters(self, client, test_user):
        response = client.post(
            RECONCILE_URL,
            json={'organizationId': test_user.organization_id, 'userId': test_user.user_id},
            headers=test_user.auth_headers,
        )

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Missing required parameters: filePath, actionForDuplicates'

    def test_user_id_must_match_token(self, client, test_user, other_user):
        body = _reconcile_body(test_user, f'{test_user.organization_id}/x.csv', userId=other_user.user_id)

        response = client.post(RECONCILE_URL, json=body, headers=test_user.auth_headers)

        assert response.status_code == 403

    def test_organization_must_match_token(self, client, test_user, other_user):
        body = _reconcile_body(
            test_user,
            f'{other_user.organization_id}/x.csv',
            organizationId=other_user.organization_id,
        )

        response = client.post(RECONCILE_URL, json=body, headers=test_user.auth_headers)

        assert response.status_code == 403
        assert response.get_json()['message'] == 'You do not have access to this organization'

    def test_file_of_another_organization_is_refused(self, client, test_user, other_user, csv_upload):
        foreign_path = csv_upload(other_user, [{'sku': 'A1', 'name': 'Widget'}])

        response = client.post(
            RECONCILE_URL, json=_reconcile_body(test_user, foreign_path), headers=test_user.auth_headers
        )

        assert response.status_code == 403

    def test_parent_segments_cannot_reach_another_organization(
        self, app, client, storage, test_user, other_user, csv_upload
    ):
        foreign_path = csv_upload(other_user, [{'sku': 'SECRET', 'name': 'Foreign Widget'}])
        sneaky_path = f'{test_user.organization_id}/../{foreign_path}'

        response = client.post(
            RECONCILE_URL, json=_reconcile_body(test_user, sneaky_path), headers=test_user.auth_headers
        )

        assert response.status_code == 403
        assert storage.path_for(foreign_path).exists()
        with app.app_context():
            assert InventoryItem.for_organization(test_user.organization_id).count() == 0

    def test_unknown_policy(self, client, test_user):
        body = _reconcile_body(test_user, f'{test_user.organization_id}/x.csv', policy='merge')

        response = client.post(RECONCILE_URL, json=body, headers=test_user.auth_headers)

        assert response.status_code == 400
        assert response.get_json()['message'].startswith("Invalid duplicate policy 'merge'")

    def test_unparseable_file_is_reported(self, client, test_user):
        file_path = _upload(client, test_user, b'sku,name\n').get_json()['data']['filePath']

        response = client.post(
            RECONCILE_URL, json=_reconcile_body(test_user, file_path), headers=test_user.auth_headers
        )

        assert response.status_code == 400
        assert response.get_json()['success'] is False
        assert 'no data rows' in response.get_json()['message']


class TestReconcileFlow:
    def test_upload_then_reconcile(self, app, client, test_user, storage):
        upload = _upload(client, test_user, b'sku,name,pickingBinQuantity\nA1,Widget,5\nB2,Gadget,2\n')
        assert upload.status_code == 201
        file_path = upload.get_json()['data']['filePath']
        assert file_path.startswith(f'{test_user.organization_id}/')
        assert storage.path_for(file_path).exists()

        response = client.post(
            RECONCILE_URL, json=_reconcile_body(test_user, file_path), headers=test_user.auth_headers
        )

        payload = response.get_json()
        assert response.status_code == 200
        assert payload['success'] is True
        assert payload['insertedCount'] == 2
        assert payload['errors'] == []
        assert payload['message'] == 'Bulk import complete. Inserted 2 items, updated 0 items, skipped 0 duplicates.'
        assert not storage.path_for(file_path).exists()
        with app.app_context():
            assert InventoryItem.for_organization(test_user.organization_id).count() == 2

    def test_row_errors_return_400_with_counts(self, client, test_user, make_item, csv_upload):
        make_item(test_user, 'A1')
        file_path = csv_upload(test_user, [
            {'sku': 'A1', 'name': 'Widget'},
            {'sku': 'B2', 'name': ''},
            {'sku': 'C3', 'name': 'Gizmo'},
        ])

        response = client.post(
            RECONCILE_URL, json=_reconcile_body(test_user, file_path), headers=test_user.auth_headers
        )

        payload = response.get_json()
        assert response.status_code == 400
        assert payload['success'] is False
        assert payload['insertedCount'] == 1
        assert payload['skippedCount'] == 1
        assert payload['errors'] == ['Row 3 (SKU: B2): Item Name is required.']
        assert len(payload['warnings']) == 1

    def test_concurrent_import_for_same_organization_conflicts(self, client, test_user, csv_upload):
        file_path = csv_upload(test_user, [{'sku': 'A1', 'name': 'Widget'}])

        engine_locks.acquire(test_user.organization_id)
        try:
            response = client.post(
                RECONCILE_URL, json=_reconcile_body(test_user, file_path), headers=test_user.auth_headers
            )
        finally:
            engine_locks.release(test_user.organization_id)

        assert response.status_code == 409
        assert 'already in progress' in response.get_json()['message']


class TestUploads:
    def test_unsupported_extension(self, client, test_user):
        response = _upload(client, test_user, b'sku,name\nA1,Widget\n', filename='inventory.txt')

        assert response.status_code == 400
        assert response.get_json()['message'].startswith('Unsupported file type')

    def test_empty_file(self, client, test_user):
        response = _upload(client, test_user, b'')

        assert response.status_code == 400

    def test_missing_file(self, client, test_user):
        response = client.post(UPLOAD_URL, data={}, headers=test_user.auth_headers)

        assert response.status_code == 400
        assert response.get_json()['message'] == 'Missing required parameters: file'

    def test_upload_for_another_organization(self, client, test_user, other_user):
        response = _upload(client, test_user, b'sku,name\nA1,Widget\n', organizationId=str(other_user.organization_id))

        assert response.status_code == 403

    def test_non_integer_organization(self, client, test_user):
        response = _upload(client, test_user, b'sku,name\nA1,Widget\n', organizationId='acme')

        assert response.status_code == 400


class TestCatalogAndFolders:
    def test_catalog_lists_only_own_keys(self, client, test_user, other_user, make_item, make_folder):
        make_item(test_user, 'B2')
        make_item(test_user, 'A1')
        make_folder(test_user, 'Main')
        make_item(other_user, 'Z9')
        make_folder(other_user, 'Elsewhere')

        response = client.get('/api/inventory/imports/catalog', headers=test_user.auth_headers)

        assert response.status_code == 200
        assert response.get_json()['data'] == {'skus': ['A1', 'B2'], 'folderNames': ['Main']}

    def test_create_folder_then_reuse(self, client, test_user):
        created = client.post('/api/inventory/folders', json={'name': 'Back Room'}, headers=test_user.auth_headers)
        reused = client.post('/api/inventory/folders', json={'name': 'back room'}, headers=test_user.auth_headers)

        assert created.status_code == 201
        assert created.get_json()['data']['created'] is True
        assert reused.status_code == 200
        assert reused.get_json()['data']['created'] is False
        assert reused.get_json()['data']['id'] == created.get_json()['data']['id']

    def test_create_folder_requires_name(self, client, test_user):
        response = client.post('/api/inventory/folders', json={'name': '  '}, headers=test_user.auth_headers)

        assert response.status_code == 422
        assert response.get_json()['errors'] == {'name': ['Folder name is required']}

    def test_template_download(self, client, test_user):
        response = client.get('/api/inventory/imports/template', headers=test_user.auth_headers)

        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert 'inventory_import_template.csv' in response.headers['Content-Disposition']
        assert response.get_data(as_text=True).startswith('name,description,sku,')


def test_database_outage_returns_503(client, test_user, monkeypatch):
    def unavailable(organization_id):
        raise OperationalError('SELECT sku FROM inventory_item', {}, Exception('server closed the connection'))

    monkeypatch.setattr('fortress.blueprints.inventory_import.routes.load_catalog_keys', unavailable)

    response = client.get('/api/inventory/imports/catalog', headers=test_user.auth_headers)

    assert response.status_code == 503
    assert response.get_json()['success'] is False


@pytest.fixture
def limited_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f"sqlite:///{tmp_path / 'limited.db'}",
        'SECRET_KEY': 'test-secret-key',
        'RATELIMIT_ENABLED': True,
        'IMPORT_RATE_LIMIT': '1 per minute',
        'IMPORT_STORAGE_DIR': str(tmp_path / 'uploads'),
    })
    with app.app_context():
        db.create_all()
        org = Organization(name='Limited Organization')
        db.session.add(org)
        db.session.flush()
        db.session.add(User(username='limited', api_token='token-limited', organization_id=org.id))
        db.session.commit()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def test_upload_rate_limit(limited_app):
    client = limited_app.test_client()
    headers = {'Authorization': 'Bearer token-limited'}

    def upload():
        return client.post(
            UPLOAD_URL,
            data={'file': (io.BytesIO(b'sku,name\nA1,Widget\n'), 'inventory.csv')},
            headers=headers,
            content_type='multipart/form-data',
        )

    assert upload().status_code == 201
    response = upload()

    assert response.status_code == 429
    assert response.get_json()['message'].startswith('Rate limit exceeded')
