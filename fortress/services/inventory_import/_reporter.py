"""Aggregation of per-row outcomes and the user-facing import summary."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

OUTCOME_INSERTED = "inserted"
OUTCOME_UPDATED = "updated"
OUTCOME_SKIPPED = "skipped"
OUTCOME_ERROR = "error"

SEVERITY_SUCCESS = "success"
SEVERITY_WARNING = "warning"
SEVERITY_FAILURE = "failure"


@dataclass
class RowOutcome:
    row_number: Optional[int]
    sku: Optional[str]
    status: str
    message: str = ""


@dataclass
class ImportResult:
    inserted_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    outcomes: list[RowOutcome] = field(default_factory=list)
    created_categories: list[str] = field(default_factory=list)
    created_folders: list[str] = field(default_factory=list)

    def record(self, row_number, sku, status, message: str = "") -> None:
        self.outcomes.append(RowOutcome(row_number, sku, status, message))
        if status == OUTCOME_ERROR and message:
            self.errors.append(message)
        elif status == OUTCOME_SKIPPED:
            self.skipped_count += 1
            if message:
                self.warnings.append(message)

    @property
    def succeeded_count(self) -> int:
        return self.inserted_count + self.updated_count

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        return (
            f"Bulk import complete. Inserted {self.inserted_count} items, "
            f"updated {self.updated_count} items, skipped {self.skipped_count} duplicates."
        )

    @property
    def http_status(self) -> int:
        return 200 if self.success else 400

    def to_payload(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "success": self.success,
            "insertedCount": self.inserted_count,
            "updatedCount": self.updated_count,
            "skippedCount": self.skipped_count,
            "createdCategories": list(self.created_categories),
            "createdFolders": list(self.created_folders),
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ImportResult":
        return cls(
            inserted_count=int(payload.get("insertedCount") or 0),
            updated_count=int(payload.get("updatedCount") or 0),
            skipped_count=int(payload.get("skippedCount") or 0),
            errors=[str(e) for e in payload.get("errors") or []],
            warnings=[str(w) for w in payload.get("warnings") or []],
            created_categories=list(payload.get("createdCategories") or []),
            created_folders=list(payload.get("createdFolders") or []),
        )


@dataclass(frozen=True)
class ImportSummary:
    severity: str
    message: str
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    inserted_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0

    @property
    def is_failure(self) -> bool:
        return self.severity == SEVERITY_FAILURE


def summarize(result: ImportResult) -> ImportSummary:
    """Any success is a partial success; only zero successes with errors is a failure."""
    if not result.errors:
        severity = SEVERITY_SUCCESS
        message = result.message
    elif result.succeeded_count > 0:
        severity = SEVERITY_WARNING
        message = f"{result.message} {len(result.errors)} row(s) could not be imported."
    else:
        severity = SEVERITY_FAILURE
        message = f"Bulk import failed: no items were imported. {len(result.errors)} error(s) reported."

    return ImportSummary(
        severity=severity,
        message=message,
        errors=tuple(result.errors),
        warnings=tuple(result.warnings),
        inserted_count=result.inserted_count,
        updated_count=result.updated_count,
        skipped_count=result.skipped_count,
    )


class ResultReporter:
    """Turns an engine result into a summary and signals the catalog to refresh."""

    def __init__(
        self,
        *,
        on_refresh: Optional[Callable[[], None]] = None,
        notify: Optional[Callable[[ImportSummary], None]] = None,
    ):
        self.on_refresh = on_refresh
        self.notify = notify

    def report(self, result: ImportResult) -> ImportSummary:
        summary = summarize(result)
        if summary.is_failure:
            logger.warning("Inventory import failed: %s", summary.message)
        else:
            logger.info("Inventory import finished: %s", summary.message)
        for error in summary.errors:
            logger.debug("Import row error: %s", error)

        if self.on_refresh is not None:
            self.on_refresh()
        if self.notify is not None:
            self.notify(summary)
        return summary
