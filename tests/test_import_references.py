import pytest
from sqlalchemy.exc import OperationalError

from fortress.extensions import db
from fortress.models import Category, Folder
from fortress.services.inventory_import import ReferenceCreationError, ReferenceResolver, name_ids


def _resolver(tenant, **memos):
    return ReferenceResolver(organization_id=tenant.organization_id, user_id=tenant.user_id, **memos)


def test_new_name_is_created_once_across_case_variants(app, test_user):
    with app.app_context():
        resolver = _resolver(test_user)

        first = resolver.resolve_folder('Back Room')
        second = resolver.resolve_folder('back room ')

        assert first == second
        assert resolver.created_folders == ['Back Room']
        assert Folder.for_organization(test_user.organization_id).count() == 1


def test_seeded_names_are_reused_without_writes(app, test_user, make_folder):
    folder_id = make_folder(test_user, 'Main')

    with app.app_context():
        resolver = _resolver(test_user, folders=name_ids(Folder, test_user.organization_id))

        assert resolver.resolve_folder('MAIN') == folder_id
        assert resolver.created_folders == []
        assert Folder.query.count() == 1


def test_categories_and_folders_have_separate_memos(app, test_user):
    with app.app_context():
        resolver = _resolver(test_user)

        resolver.resolve_category('Tools')
        resolver.resolve_folder('Tools')

        assert resolver.created_categories == ['Tools']
        assert resolver.created_folders == ['Tools']
        category = Category.for_organization(test_user.organization_id).one()
        assert category.color == '#CCCCCC'
        assert category.user_id == test_user.user_id


def test_name_created_after_snapshot_is_looked_up(app, test_user, make_folder):
    folder_id = make_folder(test_user, 'Main')

    with app.app_context():
        # Empty memo: the folder appeared after the catalog was read
        resolver = _resolver(test_user, folders={})

        assert resolver.resolve_folder('Main') == folder_id
        assert resolver.created_folders == []
        assert resolver.folders == {'main': folder_id}


def test_same_name_in_another_organization_is_independent(app, test_user, other_user, make_folder):
    other_id = make_folder(other_user, 'Main')

    with app.app_context():
        folder_id = _resolver(test_user).resolve_folder('Main')

        assert folder_id != other_id
        assert Folder.query.filter_by(name='Main').count() == 2


def test_database_failure_raises_reference_creation_error(app, test_user, monkeypatch):
    with app.app_context():
        def failing_commit():
            raise OperationalError('INSERT INTO category', {}, Exception('database is locked'))

        monkeypatch.setattr(db.session, 'commit', failing_commit)
        resolver = _resolver(test_user)

        with pytest.raises(ReferenceCreationError) as excinfo:
            resolver.resolve_category('Tools')

        assert str(excinfo.value).startswith("Failed to create category 'Tools':")
        assert excinfo.value.kind == 'category'
        assert resolver.categories == {}
