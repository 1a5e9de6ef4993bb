from __future__ import annotations

import csv
import io

from ._fields import TEMPLATE_COLUMNS, TEMPLATE_EXAMPLE_ROW

TEMPLATE_FILENAME = "inventory_import_template.csv"


def template_csv() -> str:
    """Header row plus one example row, in the column order the importer documents."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(TEMPLATE_COLUMNS)
    writer.writerow(TEMPLATE_EXAMPLE_ROW)
    return buffer.getvalue()
