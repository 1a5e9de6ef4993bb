"""Transports the confirmation gate uses to reach the catalog and the engine.

``LocalImportBackend`` runs everything in-process (CLI, tests).
``HttpImportBackend`` talks to the JSON API with a bearer token.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import requests

from ...models import Folder
from ._engine import DuplicatePolicy, reconcile
from ._locks import engine_locks
from ._parser import SUPPORTED_EXTENSIONS
from ._references import ReferenceResolver
from ._reporter import ImportResult
from ._snapshot import load_catalog_keys, name_ids
from ._storage import BlobStore
from .errors import ImportAuthorizationError, ImportInProgressError, ImportTransportError

logger = logging.getLogger(__name__)


class ImportBackend:
    def catalog_keys(self, organization_id: int) -> tuple[list[str], list[str]]:
        raise NotImplementedError

    def create_folder(self, organization_id: int, user_id: int, name: str) -> int:
        raise NotImplementedError

    def upload(self, content: bytes, filename: str, organization_id: int) -> str:
        raise NotImplementedError

    def reconcile(
        self, file_path: str, organization_id: int, user_id: int, policy: DuplicatePolicy
    ) -> ImportResult:
        raise NotImplementedError


class LocalImportBackend(ImportBackend):
    def __init__(
        self,
        storage: BlobStore,
        *,
        max_rows: Optional[int] = None,
        allowed_extensions: Sequence[str] = SUPPORTED_EXTENSIONS,
    ):
        self.storage = storage
        self.max_rows = max_rows
        self.allowed_extensions = allowed_extensions

    def catalog_keys(self, organization_id):
        return load_catalog_keys(organization_id)

    def create_folder(self, organization_id, user_id, name):
        resolver = ReferenceResolver(
            organization_id=organization_id,
            user_id=user_id,
            folders=name_ids(Folder, organization_id),
        )
        return resolver.resolve_folder(name)

    def upload(self, content, filename, organization_id):
        try:
            return self.storage.save(content, filename, organization_id)
        except OSError as exc:
            raise ImportTransportError(f"Could not store uploaded file: {exc}") from exc

    def reconcile(self, file_path, organization_id, user_id, policy):
        with engine_locks.hold(organization_id):
            return reconcile(
                file_path,
                organization_id,
                user_id,
                policy,
                storage=self.storage,
                max_rows=self.max_rows,
                allowed_extensions=self.allowed_extensions,
            )


class HttpImportBackend(ImportBackend):
    """Calls the import API. The request timeout is the only timeout; there is no retry."""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        *,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {api_token}", "Accept": "application/json"})

    def catalog_keys(self, organization_id):
        payload = self._request("GET", "/api/inventory/imports/catalog", params={"organizationId": organization_id})
        data = payload.get("data") or {}
        return list(data.get("skus") or []), list(data.get("folderNames") or [])

    def create_folder(self, organization_id, user_id, name):
        payload = self._request(
            "POST",
            "/api/inventory/folders",
            json={"organizationId": organization_id, "userId": user_id, "name": name},
        )
        return int((payload.get("data") or {}).get("id"))

    def upload(self, content, filename, organization_id):
        payload = self._request(
            "POST",
            "/api/inventory/imports/uploads",
            data={"organizationId": str(organization_id)},
            files={"file": (filename, content)},
        )
        return (payload.get("data") or {}).get("filePath")

    def reconcile(self, file_path, organization_id, user_id, policy):
        payload = self._request(
            "POST",
            "/api/inventory/imports/reconcile",
            json={
                "filePath": file_path,
                "organizationId": organization_id,
                "userId": user_id,
                "actionForDuplicates": DuplicatePolicy.parse(policy).value,
            },
            accept_partial=True,
        )
        return ImportResult.from_payload(payload)

    def _request(self, method: str, path: str, *, accept_partial: bool = False, **kwargs) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("Import API %s %s failed: %s", method, path, exc)
            raise ImportTransportError(f"Could not reach the import service: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        message = payload.get("message") or payload.get("error") or response.reason

        if response.status_code in (401, 403):
            raise ImportAuthorizationError(f"Not permitted to run the import: {message}")
        if response.status_code == 409:
            sent = kwargs.get("json") or kwargs.get("data") or kwargs.get("params") or {}
            raise ImportInProgressError(sent.get("organizationId"))
        if response.status_code >= 500:
            raise ImportTransportError(f"Import service error ({response.status_code}): {message}")
        # Row-level failures come back as 400 with the full result body
        if response.status_code == 400 and accept_partial and "insertedCount" in payload:
            return payload
        if response.status_code >= 400 or not payload:
            raise ImportTransportError(f"Import request rejected ({response.status_code}): {message}")
        return payload
