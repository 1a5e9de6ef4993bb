"""Pre-scan of candidate rows against the current catalog. Performs no writes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from ._fields import FIRST_DATA_LINE
from ._normalizer import CandidateRow, normalize_row
from .errors import RowValidationError


@dataclass(frozen=True)
class DuplicateCandidate:
    sku: str
    item_name: str
    csv_quantity: int
    row_number: int


@dataclass(frozen=True)
class Classification:
    new_rows: tuple[CandidateRow, ...]
    duplicate_rows: tuple[CandidateRow, ...]
    duplicates: tuple[DuplicateCandidate, ...]
    unseen_folder_names: tuple[str, ...]
    invalid_rows: tuple[RowValidationError, ...] = field(default=())

    @property
    def has_duplicates(self) -> bool:
        return bool(self.duplicates)

    @property
    def has_unseen_folders(self) -> bool:
        return bool(self.unseen_folder_names)


def classify_candidates(
    candidates: Sequence[CandidateRow],
    existing_skus: Iterable[str],
    existing_folder_names: Iterable[str],
) -> Classification:
    """Partition candidates into new and duplicate rows and collect unknown folder names.

    ``duplicates`` holds one entry per existing SKU, first occurrence wins.
    """
    known_skus = {sku.strip().lower() for sku in existing_skus if sku}
    known_folders = {name.strip().lower() for name in existing_folder_names if name}

    new_rows: list[CandidateRow] = []
    duplicate_rows: list[CandidateRow] = []
    duplicates: list[DuplicateCandidate] = []
    reported: set[str] = set()
    unseen: dict[str, str] = {}

    for candidate in candidates:
        if candidate.sku_key in known_skus:
            duplicate_rows.append(candidate)
            if candidate.sku_key not in reported:
                reported.add(candidate.sku_key)
                duplicates.append(
                    DuplicateCandidate(
                        sku=candidate.sku,
                        item_name=candidate.name,
                        csv_quantity=candidate.total_quantity,
                        row_number=candidate.row_number,
                    )
                )
        else:
            new_rows.append(candidate)

        for folder_name in candidate.folder_names:
            key = folder_name.lower()
            if key not in known_folders and key not in unseen:
                unseen[key] = folder_name

    return Classification(
        new_rows=tuple(new_rows),
        duplicate_rows=tuple(duplicate_rows),
        duplicates=tuple(duplicates),
        unseen_folder_names=tuple(unseen.values()),
    )


def prescan_rows(
    raw_rows: Sequence[Mapping[str, Any]],
    existing_skus: Iterable[str],
    existing_folder_names: Iterable[str],
) -> Classification:
    """Normalize raw rows and classify the valid ones.

    Invalid rows are carried along for display; the server reports them again.
    """
    candidates: list[CandidateRow] = []
    invalid: list[RowValidationError] = []
    for index, raw in enumerate(raw_rows):
        try:
            candidates.append(normalize_row(raw, index + FIRST_DATA_LINE))
        except RowValidationError as exc:
            invalid.append(exc)

    result = classify_candidates(candidates, existing_skus, existing_folder_names)
    return Classification(
        new_rows=result.new_rows,
        duplicate_rows=result.duplicate_rows,
        duplicates=result.duplicates,
        unseen_folder_names=result.unseen_folder_names,
        invalid_rows=tuple(invalid),
    )
