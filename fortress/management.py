"""
Management commands for bulk inventory import
"""
import os

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.inventory_import import (
    TEMPLATE_FILENAME,
    Aborted,
    DuplicatePolicy,
    DuplicateWarning,
    Idle,
    ImportGate,
    ImportInProgressError,
    LocalImportBackend,
    NewFolderConfirmation,
    storage_from_config,
    template_csv,
)


@click.command('import-inventory')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--org-id', type=int, required=True, help='Organization that owns the imported items.')
@click.option('--user-id', type=int, required=True, help='User recorded as the actor of the import.')
@click.option(
    '--duplicates',
    type=click.Choice([policy.value for policy in DuplicatePolicy]),
    default=None,
    help='What to do with SKUs that already exist. Prompted for when omitted.',
)
@click.option('--yes', is_flag=True, help='Create new folders without asking; duplicates default to skip.')
@with_appcontext
def import_inventory_command(path, org_id, user_id, duplicates, yes):
    """Import a .csv or .xlsx inventory file for one organization."""
    user = db.session.get(User, user_id)
    if user is None or user.organization_id != org_id:
        raise click.ClickException(f"User {user_id} does not belong to organization {org_id}.")

    config = current_app.config
    allowed = tuple(config.get('IMPORT_ALLOWED_EXTENSIONS') or ())
    backend = LocalImportBackend(
        storage_from_config(config),
        max_rows=config.get('IMPORT_MAX_ROWS'),
        allowed_extensions=allowed,
    )
    gate = ImportGate(
        backend,
        organization_id=org_id,
        user_id=user_id,
        max_rows=config.get('IMPORT_MAX_ROWS'),
        allowed_extensions=allowed,
    )

    with open(path, 'rb') as handle:
        content = handle.read()

    try:
        state = gate.load(content, os.path.basename(path))
    except ImportInProgressError as e:
        raise click.ClickException(str(e))

    if isinstance(state, Idle):
        raise click.ClickException(state.error or 'The file could not be parsed.')

    classification = gate.classification
    if classification is not None:
        for invalid in classification.invalid_rows:
            click.echo(f"⚠️  {invalid}")

    if isinstance(state, DuplicateWarning):
        click.echo(f"Found {len(state.parsed.classification.duplicates)} SKU(s) that already exist:")
        for duplicate in state.parsed.classification.duplicates:
            click.echo(
                f"   - {duplicate.sku} ({duplicate.item_name}), file quantity {duplicate.csv_quantity}"
                f" [row {duplicate.row_number}]"
            )
        policy = duplicates
        if policy is None:
            if yes:
                policy = DuplicatePolicy.SKIP.value
            else:
                policy = click.prompt(
                    'How should duplicates be handled?',
                    type=click.Choice([p.value for p in DuplicatePolicy]),
                    default=DuplicatePolicy.SKIP.value,
                )
        state = gate.choose_policy(policy)

    if isinstance(state, NewFolderConfirmation):
        names = state.parsed.classification.unseen_folder_names
        click.echo(f"The file references {len(names)} folder(s) that do not exist yet: {', '.join(names)}")
        if yes or click.confirm('Create these folders and continue?', default=True):
            state = gate.confirm_folders()
        else:
            state = gate.decline('Folder creation declined.')

    if isinstance(state, Aborted):
        message = f"Import aborted: {state.reason}"
        if state.file_path:
            message += f" (uploaded file left at {state.file_path})"
        raise click.ClickException(message)

    summary = gate.summary
    click.echo(f"{'❌' if summary.is_failure else '✅'} {summary.message}")
    for warning in summary.warnings:
        click.echo(f"ℹ️  {warning}")
    for error in summary.errors:
        click.echo(f"❌ {error}")
    if summary.is_failure:
        raise SystemExit(1)


@click.command('inventory-import-template')
@click.argument('output', type=click.Path(dir_okay=False), default=TEMPLATE_FILENAME)
def inventory_import_template_command(output):
    """Write the inventory import CSV template."""
    with open(output, 'w', encoding='utf-8', newline='') as handle:
        handle.write(template_csv())
    click.echo(f"✅ Wrote import template to {output}")


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(import_inventory_command)
    app.cli.add_command(inventory_import_template_command)
