import logging

from flask import Blueprint, Response, current_app, jsonify, request
from flask_login import current_user, login_required

from ...extensions import limiter
from ...models import Folder
from ...services.inventory_import import (
    TEMPLATE_FILENAME,
    DuplicatePolicy,
    ImportInProgressError,
    ReferenceCreationError,
    ReferenceResolver,
    TableParseError,
    engine_locks,
    file_extension,
    load_catalog_keys,
    name_ids,
    owner_of,
    reconcile,
    storage_from_config,
    template_csv,
)
from ...utils.api_responses import APIResponse

logger = logging.getLogger(__name__)

inventory_import_bp = Blueprint('inventory_import', __name__)


def _import_rate_limit():
    return current_app.config.get('IMPORT_RATE_LIMIT') or '30 per minute'


def _coerce_id(value):
    if value is None or str(value).strip() == '':
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _resolve_organization(raw_value):
    """Organization id from the request, defaulting to the caller's own.

    Returns (organization_id, error_response).
    """
    if raw_value in (None, ''):
        return current_user.organization_id, None
    organization_id = _coerce_id(raw_value)
    if organization_id is None:
        return None, APIResponse.error('organizationId must be an integer')
    if organization_id != current_user.organization_id:
        logger.warning(
            "User %s attempted an inventory import for organization %s",
            current_user.id,
            raw_value,
        )
        return None, APIResponse.forbidden('You do not have access to this organization')
    return organization_id, None


@inventory_import_bp.route('/imports/reconcile', methods=['POST'])
@login_required
@limiter.limit(_import_rate_limit)
def reconcile_import():
    """Run the reconciliation engine on a previously uploaded file."""
    data = request.get_json(silent=True) or {}
    required = ('filePath', 'organizationId', 'userId', 'actionForDuplicates')
    missing = [name for name in required if data.get(name) in (None, '')]
    if missing:
        return APIResponse.error(f"Missing required parameters: {', '.join(missing)}")

    user_id = _coerce_id(data.get('userId'))
    if user_id != current_user.id:
        logger.warning("User %s attempted an import as user %s", current_user.id, data.get('userId'))
        return APIResponse.forbidden('userId does not match the authenticated user')

    organization_id, error = _resolve_organization(data.get('organizationId'))
    if error:
        return error

    try:
        policy = DuplicatePolicy.parse(data.get('actionForDuplicates'))
    except ValueError as e:
        return APIResponse.error(str(e))

    file_path = str(data['filePath'])
    if owner_of(file_path) != organization_id:
        return APIResponse.forbidden('The uploaded file does not belong to this organization')

    try:
        with engine_locks.hold(organization_id):
            result = reconcile(
                file_path,
                organization_id,
                user_id,
                policy,
                storage=storage_from_config(current_app.config),
                max_rows=current_app.config.get('IMPORT_MAX_ROWS'),
                allowed_extensions=tuple(current_app.config.get('IMPORT_ALLOWED_EXTENSIONS') or ()),
            )
    except ImportInProgressError as e:
        return APIResponse.conflict(str(e))
    except TableParseError as e:
        return APIResponse.error(str(e))

    return jsonify(result.to_payload()), result.http_status


@inventory_import_bp.route('/imports/uploads', methods=['POST'])
@login_required
@limiter.limit(_import_rate_limit)
def upload_import_file():
    """Store an import file and return the path the engine reads it from."""
    organization_id, error = _resolve_organization(request.form.get('organizationId'))
    if error:
        return error

    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return APIResponse.error('Missing required parameters: file')

    allowed = tuple(current_app.config.get('IMPORT_ALLOWED_EXTENSIONS') or ())
    if file_extension(upload.filename) not in allowed:
        return APIResponse.error(
            f"Unsupported file type. Upload one of: {', '.join('.' + ext for ext in allowed)}"
        )

    content = upload.read()
    if not content:
        return APIResponse.error('The uploaded file is empty')

    storage = storage_from_config(current_app.config)
    file_path = storage.save(content, upload.filename, organization_id)
    return APIResponse.success({'filePath': file_path}, message='File uploaded', status_code=201)


@inventory_import_bp.route('/imports/catalog', methods=['GET'])
@login_required
def import_catalog_keys():
    """Existing SKUs and folder names for the client-side duplicate pre-scan."""
    organization_id, error = _resolve_organization(request.args.get('organizationId'))
    if error:
        return error

    skus, folder_names = load_catalog_keys(organization_id)
    return APIResponse.success({'skus': skus, 'folderNames': folder_names})


@inventory_import_bp.route('/folders', methods=['POST'])
@login_required
def create_folder():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return APIResponse.validation_error({'name': ['Folder name is required']})

    organization_id, error = _resolve_organization(data.get('organizationId'))
    if error:
        return error

    resolver = ReferenceResolver(
        organization_id=organization_id,
        user_id=current_user.id,
        folders=name_ids(Folder, organization_id),
    )
    try:
        folder_id = resolver.resolve_folder(name)
    except ReferenceCreationError as e:
        return APIResponse.error(str(e), status_code=500)

    created = bool(resolver.created_folders)
    return APIResponse.success(
        {'id': folder_id, 'name': name, 'created': created},
        message='Folder created' if created else 'Folder already exists',
        status_code=201 if created else 200,
    )


@inventory_import_bp.route('/imports/template', methods=['GET'])
@login_required
def download_template():
    return Response(
        template_csv(),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={TEMPLATE_FILENAME}'},
    )
