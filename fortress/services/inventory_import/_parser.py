"""Table parsing for uploaded inventory files (.csv and .xlsx)."""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from pathlib import PurePosixPath
from typing import Any, Iterable, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from .errors import TableParseError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "xlsx")


def file_extension(filename: str) -> str:
    return PurePosixPath(filename or "").suffix.lstrip(".").lower()


def parse_table(
    content: bytes,
    filename: str,
    *,
    max_rows: Optional[int] = None,
    allowed_extensions: Sequence[str] = SUPPORTED_EXTENSIONS,
) -> list[dict[str, Any]]:
    """Parse the first sheet of ``content`` into header-keyed rows.

    Blank rows are dropped. Raises :class:`TableParseError` when the file
    cannot be read or holds no data rows.
    """
    extension = file_extension(filename)
    if extension not in allowed_extensions or extension not in SUPPORTED_EXTENSIONS:
        raise TableParseError(
            f"Unsupported file type '.{extension or '?'}'. Upload one of: "
            + ", ".join(f".{ext}" for ext in allowed_extensions)
        )

    if extension == "xlsx":
        rows = _parse_xlsx(content)
    else:
        rows = _parse_csv(content)

    if not rows:
        raise TableParseError("The file is empty or contains no data rows.")
    if max_rows and len(rows) > max_rows:
        raise TableParseError(f"The file has {len(rows)} data rows; the limit is {max_rows}.")
    logger.debug("Parsed %s data rows from %s", len(rows), filename)
    return rows


def _parse_csv(content: bytes) -> list[dict[str, Any]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = content.decode("latin-1")

    try:
        reader = csv.reader(io.StringIO(text, newline=""))
        header = next(reader, None)
        if not header:
            raise TableParseError("The file is empty or contains no data rows.")
        return _rows_from(header, reader)
    except csv.Error as exc:
        raise TableParseError(f"Error parsing CSV file: {exc}") from exc


# SyntaxError covers XML parse errors from both ElementTree and lxml
_XLSX_ERRORS = (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError, TypeError, SyntaxError)


def _parse_xlsx(content: bytes) -> list[dict[str, Any]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except _XLSX_ERRORS as exc:
        raise TableParseError(f"Error parsing spreadsheet: {exc}") from exc

    # read_only workbooks parse sheet XML lazily, so row iteration can fail too
    try:
        if not workbook.worksheets:
            raise TableParseError("The workbook has no worksheets.")
        values = workbook.worksheets[0].iter_rows(values_only=True)
        header = next(values, None)
        if not header:
            raise TableParseError("The file is empty or contains no data rows.")
        return _rows_from(header, values)
    except _XLSX_ERRORS as exc:
        raise TableParseError(f"Error parsing spreadsheet: {exc}") from exc
    finally:
        workbook.close()


def _rows_from(header: Sequence[Any], records: Iterable[Sequence[Any]]) -> list[dict[str, Any]]:
    names = [str(cell).strip() if cell is not None else "" for cell in header]
    if not any(names):
        raise TableParseError("The header row is empty.")

    rows: list[dict[str, Any]] = []
    for record in records:
        row = {
            name: value
            for name, value in zip(names, record)
            if name
        }
        if all(value is None or str(value).strip() == "" for value in row.values()):
            continue
        rows.append(row)
    return rows
