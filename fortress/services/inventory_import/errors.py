"""Exception hierarchy for the bulk inventory import pipeline."""

from __future__ import annotations


class ImportPipelineError(RuntimeError):
    """Base class for bulk import failures."""


class TableParseError(ImportPipelineError):
    """The uploaded table is malformed, empty, or too large. Nothing is processed."""


class RowValidationError(ImportPipelineError):
    """A required identity field is missing; the row is skipped."""

    def __init__(self, row_number: int, field: str, message: str):
        super().__init__(message)
        self.row_number = row_number
        self.field = field


class ReferenceCreationError(ImportPipelineError):
    """A category or folder referenced by a row could not be created."""

    def __init__(self, kind: str, name: str, reason: str):
        super().__init__(f"Failed to create {kind} '{name}': {reason}")
        self.kind = kind
        self.name = name


class ImportWriteError(ImportPipelineError):
    """An insert batch or an individual update failed."""


class ImportTransportError(ImportPipelineError):
    """The reconciliation engine could not be reached or gave no readable answer."""


class ImportAuthorizationError(ImportTransportError):
    """The caller is not permitted to invoke the reconciliation engine."""


class ImportInProgressError(ImportPipelineError):
    """Another import is already running for the same organization."""

    def __init__(self, organization_id):
        super().__init__(f"An inventory import is already in progress for organization {organization_id}.")
        self.organization_id = organization_id


class InvalidTransitionError(ImportPipelineError):
    """An event was delivered to the confirmation gate in a state that cannot accept it."""

    def __init__(self, state, event):
        super().__init__(f"Cannot apply {type(event).__name__} in state {type(state).__name__}")
        self.state = state
        self.event = event
