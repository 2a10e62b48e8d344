"""Dataset record types and CSV helpers."""

import csv
import io
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Provenance(str, Enum):
    """Which tier supplied the currently cached dataset."""

    REMOTE = "remote"
    LOCAL = "local"
    NONE = "none"


@dataclass(frozen=True)
class CachedDataset:
    """An immutable snapshot of the dataset.

    The cache replaces the whole record on every successful load, so
    payload, provenance and timestamp always change together.
    """

    payload: str
    provenance: Provenance
    refreshed_at: Optional[float]
    stale: bool = False

    @classmethod
    def empty(cls) -> "CachedDataset":
        return cls(payload="", provenance=Provenance.NONE, refreshed_at=None)

    @property
    def is_empty(self) -> bool:
        return self.provenance is Provenance.NONE

    @property
    def table(self) -> dict[str, list[str]]:
        """Column name to ordered row values."""
        return parse_table(self.payload)


def _reader(text: str):
    return csv.reader(io.StringIO(text.lstrip("\ufeff")))


def count_rows(text: str) -> int:
    """Count non-blank data rows below the header line."""
    rows = [row for row in _reader(text) if any(cell.strip() for cell in row)]
    return max(len(rows) - 1, 0)


def parse_table(text: str) -> dict[str, list[str]]:
    """Parse CSV text into a column-oriented mapping.

    Short rows are padded with empty strings; cells beyond the header
    width are dropped. Blank lines are skipped.
    """
    rows = [row for row in _reader(text) if any(cell.strip() for cell in row)]
    if not rows:
        return {}

    header = [name.strip() for name in rows[0]]
    columns: dict[str, list[str]] = {name: [] for name in header}
    for row in rows[1:]:
        padded = row + [""] * (len(header) - len(row))
        for name, value in zip(header, padded):
            columns[name].append(value)
    return columns
