from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from .errors import ImportInProgressError

logger = logging.getLogger(__name__)


class TenantImportLocks:
    """Non-blocking per-organization locks. A second import for the same tenant is refused."""

    def __init__(self, name: str):
        self.name = name
        self._guard = threading.Lock()
        self._held: set[int] = set()

    def acquire(self, organization_id: int) -> None:
        with self._guard:
            if organization_id in self._held:
                logger.warning("%s import refused for organization %s: already running", self.name, organization_id)
                raise ImportInProgressError(organization_id)
            self._held.add(organization_id)

    def release(self, organization_id: int) -> None:
        with self._guard:
            self._held.discard(organization_id)

    def is_held(self, organization_id: int) -> bool:
        with self._guard:
            return organization_id in self._held

    @contextmanager
    def hold(self, organization_id: int) -> Iterator[None]:
        self.acquire(organization_id)
        try:
            yield
        finally:
            self.release(organization_id)


# The confirmation gate holds its lock from Parsed until a terminal state;
# the engine lock covers one reconciliation call. Kept separate so an
# in-process gate can call the in-process engine.
gate_locks = TenantImportLocks("gate")
engine_locks = TenantImportLocks("engine")
