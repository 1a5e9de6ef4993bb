"""Resolve-or-create for the categories and folders that import rows reference."""

from __future__ import annotations

import logging
from typing import MutableMapping, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ...extensions import db
from ...models import DEFAULT_REFERENCE_COLOR, Category, Folder
from .errors import ReferenceCreationError

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """Name to id lookup seeded from the catalog snapshot.

    A created entity enters the memo before the next row is processed, so a
    name that is new to the tenant is created at most once per run.
    """

    def __init__(
        self,
        *,
        organization_id: int,
        user_id: int,
        categories: Optional[MutableMapping[str, int]] = None,
        folders: Optional[MutableMapping[str, int]] = None,
    ):
        self.organization_id = organization_id
        self.user_id = user_id
        self.categories = categories if categories is not None else {}
        self.folders = folders if folders is not None else {}
        self.created_categories: list[str] = []
        self.created_folders: list[str] = []

    def resolve_category(self, name: str) -> int:
        return self._resolve(Category, "category", name, self.categories, self.created_categories)

    def resolve_folder(self, name: str) -> int:
        return self._resolve(Folder, "folder", name, self.folders, self.created_folders)

    def _resolve(self, model, kind: str, name: str, memo: MutableMapping[str, int], created: list) -> int:
        key = name.strip().lower()
        if key in memo:
            return memo[key]

        entity = model(
            name=name.strip(),
            color=DEFAULT_REFERENCE_COLOR,
            organization_id=self.organization_id,
            user_id=self.user_id,
        )
        try:
            db.session.add(entity)
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            # Created elsewhere since the snapshot was taken
            existing_id = (
                db.session.query(model.id)
                .filter(model.organization_id == self.organization_id, func.lower(model.name) == key)
                .scalar()
            )
            if existing_id is None:
                raise ReferenceCreationError(kind, name, str(exc.orig)) from exc
            memo[key] = existing_id
            return existing_id
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise ReferenceCreationError(kind, name, str(exc)) from exc

        memo[key] = entity.id
        created.append(entity.name)
        logger.info("Created %s '%s' (id=%s) for organization %s", kind, entity.name, entity.id, self.organization_id)
        return entity.id
