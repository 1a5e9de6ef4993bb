"""Confirmation workflow run before an import reaches the reconciliation engine.

Idle -> Parsed -> [DuplicateWarning] -> [NewFolderConfirmation] -> Dispatched -> Committed

``Aborted`` is reachable from every state before ``Dispatched``, and from
``Dispatched`` only on a transport or authorization failure. ``transition``
is pure; :class:`ImportGate` performs the side effects for each state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from ._classifier import Classification, prescan_rows
from ._engine import DuplicatePolicy
from ._locks import TenantImportLocks, gate_locks
from ._parser import SUPPORTED_EXTENSIONS, parse_table
from ._reporter import ImportResult, ImportSummary, ResultReporter
from .errors import ImportPipelineError, InvalidTransitionError, TableParseError

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# States
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Idle:
    error: Optional[str] = None


@dataclass(frozen=True)
class Parsed:
    filename: str
    content: bytes
    rows: tuple[Mapping[str, Any], ...]
    classification: Classification


@dataclass(frozen=True)
class DuplicateWarning:
    parsed: Parsed


@dataclass(frozen=True)
class NewFolderConfirmation:
    parsed: Parsed
    policy: DuplicatePolicy


@dataclass(frozen=True)
class Dispatched:
    parsed: Parsed
    policy: DuplicatePolicy
    folders_to_create: tuple[str, ...] = ()


@dataclass(frozen=True)
class Committed:
    result: ImportResult


@dataclass(frozen=True)
class Aborted:
    reason: str
    file_path: Optional[str] = None


GateState = Union[Idle, Parsed, DuplicateWarning, NewFolderConfirmation, Dispatched, Committed, Aborted]
TERMINAL_STATES = (Committed, Aborted)


# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class FileParsed:
    filename: str
    content: bytes
    rows: tuple[Mapping[str, Any], ...]
    classification: Classification


@dataclass(frozen=True)
class ParseFailed:
    message: str


@dataclass(frozen=True)
class Continue:
    """Leave ``Parsed`` for whichever confirmation the pre-scan requires."""


@dataclass(frozen=True)
class PolicyChosen:
    policy: DuplicatePolicy


@dataclass(frozen=True)
class FoldersConfirmed:
    pass


@dataclass(frozen=True)
class Declined:
    reason: str = "Import cancelled."


@dataclass(frozen=True)
class EngineSucceeded:
    result: ImportResult


@dataclass(frozen=True)
class EngineFailed:
    message: str
    file_path: Optional[str] = None


def _after_policy(parsed: Parsed, policy: DuplicatePolicy) -> GateState:
    if parsed.classification.has_unseen_folders:
        return NewFolderConfirmation(parsed=parsed, policy=policy)
    return Dispatched(parsed=parsed, policy=policy)


def transition(state: GateState, event) -> GateState:
    """Next gate state for ``event``. Raises :class:`InvalidTransitionError` otherwise."""
    if isinstance(event, Declined) and isinstance(state, (Idle, Parsed, DuplicateWarning, NewFolderConfirmation)):
        return Aborted(reason=event.reason)

    if isinstance(state, (Idle, Committed, Aborted)):
        if isinstance(event, FileParsed):
            return Parsed(
                filename=event.filename,
                content=event.content,
                rows=event.rows,
                classification=event.classification,
            )
        if isinstance(event, ParseFailed):
            return Idle(error=event.message)

    elif isinstance(state, Parsed):
        if isinstance(event, Continue):
            if state.classification.has_duplicates:
                return DuplicateWarning(parsed=state)
            return _after_policy(state, DuplicatePolicy.SKIP)

    elif isinstance(state, DuplicateWarning):
        if isinstance(event, PolicyChosen):
            return _after_policy(state.parsed, DuplicatePolicy.parse(event.policy))

    elif isinstance(state, NewFolderConfirmation):
        if isinstance(event, FoldersConfirmed):
            return Dispatched(
                parsed=state.parsed,
                policy=state.policy,
                folders_to_create=state.parsed.classification.unseen_folder_names,
            )

    elif isinstance(state, Dispatched):
        if isinstance(event, EngineSucceeded):
            return Committed(result=event.result)
        if isinstance(event, EngineFailed):
            return Aborted(reason=event.message, file_path=event.file_path)

    raise InvalidTransitionError(state, event)


class ImportGate:
    """Drives one import for one organization through the confirmation states.

    The tenant lock is taken when a file is loaded and released when the
    gate reaches ``Committed``, ``Aborted`` or falls back to ``Idle``.
    """

    def __init__(
        self,
        backend,
        *,
        organization_id: int,
        user_id: int,
        reporter: Optional[ResultReporter] = None,
        locks: TenantImportLocks = gate_locks,
        max_rows: Optional[int] = None,
        allowed_extensions: Sequence[str] = SUPPORTED_EXTENSIONS,
    ):
        self.backend = backend
        self.organization_id = organization_id
        self.user_id = user_id
        self.reporter = reporter or ResultReporter()
        self.locks = locks
        self.max_rows = max_rows
        self.allowed_extensions = allowed_extensions
        self.state: GateState = Idle()
        self.summary: Optional[ImportSummary] = None
        self._holding_lock = False

    @property
    def classification(self) -> Optional[Classification]:
        parsed = self._parsed()
        return parsed.classification if parsed else None

    def load(self, content: bytes, filename: str) -> GateState:
        if not isinstance(self.state, (Idle, Committed, Aborted)):
            raise InvalidTransitionError(self.state, FileParsed(filename, content, (), None))

        self.locks.acquire(self.organization_id)
        self._holding_lock = True
        self.summary = None

        try:
            return self._prescan(content, filename)
        except Exception as exc:
            self._abandon(exc)
            raise

    def _prescan(self, content: bytes, filename: str) -> GateState:
        try:
            rows = parse_table(
                content,
                filename,
                max_rows=self.max_rows,
                allowed_extensions=self.allowed_extensions,
            )
        except TableParseError as exc:
            logger.info("Import file %s rejected: %s", filename, exc)
            return self._advance(ParseFailed(str(exc)))

        try:
            existing_skus, existing_folders = self.backend.catalog_keys(self.organization_id)
        except ImportPipelineError as exc:
            logger.warning("Could not load catalog for pre-scan: %s", exc)
            self._set_state(Aborted(reason=str(exc)))
            return self.state

        classification = prescan_rows(rows, existing_skus, existing_folders)
        logger.info(
            "Pre-scan of %s: %s rows, %s duplicates, %s new folders, %s invalid",
            filename,
            len(rows),
            len(classification.duplicates),
            len(classification.unseen_folder_names),
            len(classification.invalid_rows),
        )
        self._advance(FileParsed(filename, content, tuple(rows), classification))
        return self._advance(Continue())

    def choose_policy(self, policy) -> GateState:
        return self._advance(PolicyChosen(DuplicatePolicy.parse(policy)))

    def confirm_folders(self) -> GateState:
        return self._advance(FoldersConfirmed())

    def decline(self, reason: str = "Import cancelled.") -> GateState:
        return self._advance(Declined(reason))

    def _advance(self, event) -> GateState:
        self._set_state(transition(self.state, event))
        if isinstance(self.state, Dispatched):
            self._dispatch(self.state)
        return self.state

    def _abandon(self, exc: Exception, file_path: Optional[str] = None) -> None:
        """Abort on an error outside the pipeline's own categories so the tenant lock is freed."""
        if not self._holding_lock:
            return
        logger.exception("Inventory import for organization %s failed unexpectedly", self.organization_id)
        self._set_state(Aborted(reason=f"Unexpected error: {exc}", file_path=file_path))

    def _dispatch(self, state: Dispatched) -> None:
        file_path = None
        try:
            for name in state.folders_to_create:
                self.backend.create_folder(self.organization_id, self.user_id, name)
            file_path = self.backend.upload(state.parsed.content, state.parsed.filename, self.organization_id)
            result = self.backend.reconcile(file_path, self.organization_id, self.user_id, state.policy)
        except ImportPipelineError as exc:
            logger.error("Inventory import aborted for organization %s: %s", self.organization_id, exc)
            self._set_state(transition(state, EngineFailed(str(exc), file_path=file_path)))
            return
        except Exception as exc:
            self._abandon(exc, file_path)
            raise

        self._set_state(transition(state, EngineSucceeded(result)))
        self.summary = self.reporter.report(result)

    def _set_state(self, state: GateState) -> None:
        self.state = state
        if isinstance(state, (Idle,) + TERMINAL_STATES) and self._holding_lock:
            self.locks.release(self.organization_id)
            self._holding_lock = False

    def _parsed(self) -> Optional[Parsed]:
        state = self.state
        if isinstance(state, Parsed):
            return state
        return getattr(state, "parsed", None)
