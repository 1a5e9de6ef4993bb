import logging
import os
from logging.config import fileConfig

from alembic import context
from flask import current_app
from sqlalchemy import create_engine, text

from fortress import models  # noqa: F401  # populate metadata for autogenerate
from fortress.config import _normalize_db_url

config = context.config
fileConfig(config.config_file_name)
logger = logging.getLogger('alembic.env')

migrate_ext = current_app.extensions['migrate']


def _engine():
    """ALEMBIC_DATABASE_URL lets a deploy migrate a database other than the app's own."""
    override = _normalize_db_url(os.environ.get('ALEMBIC_DATABASE_URL'))
    return create_engine(override) if override else migrate_ext.db.engine


def _metadata():
    metadatas = getattr(migrate_ext.db, 'metadatas', None)
    return metadatas[None] if metadatas else migrate_ext.db.metadata


def _skip_empty_autogenerate(context, revision, directives):
    if getattr(config.cmd_opts, 'autogenerate', False) and directives[0].upgrade_ops.is_empty():
        directives[:] = []
        logger.info('No schema changes detected; no revision written.')


def _drop_stale_batch_tables(connection):
    # An interrupted SQLite batch migration leaves _alembic_tmp_* tables behind
    stale = connection.execute(text(
        "SELECT name FROM sqlite_master WHERE type='table' AND name LIKE '_alembic_tmp_%'"
    )).scalars().all()
    for table_name in stale:
        connection.execute(text(f'DROP TABLE IF EXISTS "{table_name}"'))
        logger.info("Dropped stale batch table %s", table_name)
    if stale:
        connection.commit()


def run_offline():
    context.configure(
        url=_engine().url.render_as_string(hide_password=False),
        target_metadata=_metadata(),
        literal_binds=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online():
    options = dict(migrate_ext.configure_args)
    options['transaction_per_migration'] = True
    options.setdefault('process_revision_directives', _skip_empty_autogenerate)

    with _engine().connect() as connection:
        if connection.dialect.name == 'sqlite':
            _drop_stale_batch_tables(connection)
        context.configure(connection=connection, target_metadata=_metadata(), **options)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
