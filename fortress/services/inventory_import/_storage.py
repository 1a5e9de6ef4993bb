"""Blob storage for uploaded import files.

Files are addressed by an opaque key ``<organization_id>/<token>_<filename>``.
Writes are atomic so a concurrent reader never sees a half-written upload.
"""

from __future__ import annotations

import logging
import os
import secrets
import tempfile
from pathlib import Path
from typing import Optional

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class BlobStore:
    """Interface used by the upload endpoint and the reconciliation engine."""

    def save(self, content: bytes, filename: str, organization_id: int) -> str:
        raise NotImplementedError

    def read(self, key: str) -> bytes:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    def __init__(self, root: str | os.PathLike[str]):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        organization_id = owner_of(key)
        if organization_id is None:
            raise FileNotFoundError(f"Invalid storage key: {key}")
        tenant_root = (self.root / str(organization_id)).resolve()
        target = (self.root / key).resolve()
        if target.parent != tenant_root:
            raise FileNotFoundError(f"Invalid storage key: {key}")
        return target

    def save(self, content: bytes, filename: str, organization_id: int) -> str:
        safe_name = secure_filename(filename or "") or "upload"
        key = f"{int(organization_id)}/{secrets.token_hex(8)}_{safe_name}"
        target = self.path_for(key)
        target.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
        try:
            with os.fdopen(fd, "wb") as tmp_file:
                tmp_file.write(content)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_path, target)
        finally:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass

        logger.info("Stored import upload %s (%s bytes)", key, len(content))
        return key

    def read(self, key: str) -> bytes:
        return self.path_for(key).read_bytes()

    def delete(self, key: str) -> bool:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            return False
        return True


def owner_of(key: str) -> Optional[int]:
    """Organization id encoded in a storage key, or None when the key is malformed.

    Only the exact ``<organization_id>/<name>`` shape is accepted; ``..``,
    absolute paths and nested segments yield None.
    """
    parts = (key or "").split("/")
    if len(parts) != 2 or "\\" in key:
        return None
    head, name = parts
    if not (head.isascii() and head.isdigit()) or name in ("", ".", ".."):
        return None
    return int(head)


def storage_from_config(config) -> LocalBlobStore:
    return LocalBlobStore(config["IMPORT_STORAGE_DIR"])
