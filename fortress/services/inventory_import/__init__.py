"""Bulk tabular import of inventory items.

Public API re-exported here; implementation lives in the private modules.
"""

from ._backends import HttpImportBackend, ImportBackend, LocalImportBackend
from ._classifier import Classification, DuplicateCandidate, classify_candidates, prescan_rows
from ._engine import ADD_TO_STOCK_REASON, DuplicatePolicy, ReconciliationEngine, reconcile
from ._fields import DEFAULT_CATEGORY, DEFAULT_FOLDER, FIRST_DATA_LINE, TEMPLATE_COLUMNS
from ._gate import (
    Aborted,
    Committed,
    Dispatched,
    DuplicateWarning,
    Idle,
    ImportGate,
    NewFolderConfirmation,
    Parsed,
    transition,
)
from ._locks import TenantImportLocks, engine_locks, gate_locks
from ._normalizer import CandidateRow, lenient_decimal, lenient_int, normalize_row
from ._parser import SUPPORTED_EXTENSIONS, file_extension, parse_table
from ._references import ReferenceResolver
from ._reporter import ImportResult, ImportSummary, ResultReporter, RowOutcome, summarize
from ._snapshot import CatalogSnapshot, load_catalog_keys, name_ids
from ._storage import BlobStore, LocalBlobStore, owner_of, storage_from_config
from ._template import TEMPLATE_FILENAME, template_csv
from .errors import (
    ImportAuthorizationError,
    ImportInProgressError,
    ImportPipelineError,
    ImportTransportError,
    ImportWriteError,
    InvalidTransitionError,
    ReferenceCreationError,
    RowValidationError,
    TableParseError,
)

__all__ = [
    "ADD_TO_STOCK_REASON",
    "Aborted",
    "BlobStore",
    "CandidateRow",
    "CatalogSnapshot",
    "Classification",
    "Committed",
    "DEFAULT_CATEGORY",
    "DEFAULT_FOLDER",
    "Dispatched",
    "DuplicateCandidate",
    "DuplicatePolicy",
    "DuplicateWarning",
    "FIRST_DATA_LINE",
    "HttpImportBackend",
    "Idle",
    "ImportAuthorizationError",
    "ImportBackend",
    "ImportGate",
    "ImportInProgressError",
    "ImportPipelineError",
    "ImportResult",
    "ImportSummary",
    "ImportTransportError",
    "ImportWriteError",
    "InvalidTransitionError",
    "LocalBlobStore",
    "LocalImportBackend",
    "NewFolderConfirmation",
    "Parsed",
    "ReconciliationEngine",
    "ReferenceCreationError",
    "ReferenceResolver",
    "ResultReporter",
    "RowOutcome",
    "RowValidationError",
    "SUPPORTED_EXTENSIONS",
    "TEMPLATE_COLUMNS",
    "TEMPLATE_FILENAME",
    "TableParseError",
    "TenantImportLocks",
    "classify_candidates",
    "engine_locks",
    "file_extension",
    "gate_locks",
    "lenient_decimal",
    "lenient_int",
    "load_catalog_keys",
    "name_ids",
    "normalize_row",
    "owner_of",
    "parse_table",
    "prescan_rows",
    "reconcile",
    "storage_from_config",
    "summarize",
    "template_csv",
    "transition",
]
