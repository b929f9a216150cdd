"""CSV exporter for report rows.

Rows are dataclass instances (or dicts); columns are (header, key, width)
tuples shared with the Excel exporter. Width is ignored here.
"""

import csv
import logging
import os
from typing import Any, Iterable, Sequence, Tuple

logger = logging.getLogger(__name__)

Column = Tuple[str, str, int]


def row_value(row: Any, key: str) -> Any:
    if isinstance(row, dict):
        value = row.get(key, "")
    else:
        value = getattr(row, key, "")
    return "" if value is None else value


def write_csv(
    path: str,
    columns: Sequence[Column],
    rows: Iterable[Any],
    delimiter: str = ",",
) -> int:
    """Write a header row then one line per row.

    Args:
        path: Output file path (parent directories are created)
        columns: (header, key, width) tuples
        rows: Report rows
        delimiter: Field delimiter

    Returns:
        Number of data rows written
    """
    if len(delimiter) != 1:
        raise ValueError(f"CSV delimiter must be a single character, got {delimiter!r}")

    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)

    count = 0
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, delimiter=delimiter)
        writer.writerow([header for header, _, _ in columns])
        for row in rows:
            writer.writerow([row_value(row, key) for _, key, _ in columns])
            count += 1

    logger.info(f"CSV written: {path}", extra={"rows": count})
    return count
