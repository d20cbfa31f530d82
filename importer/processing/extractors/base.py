"""
Abstract base class for all extractors, plus the shapes they produce.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Sequence

from importer.core.constants import FileFormat
from importer.core.logging import get_logger
from importer.pipeline.errors import MissingHeadersError

logger = get_logger(__name__)

# One parsed data row: header → raw string value, read-only, file column order.
RowRecord = Mapping[str, str]


@dataclass(frozen=True)
class HeaderLayout:
    """
    Header names with the column position each one reads from.

    Empty header cells are dropped but keep their slot, so the value at
    position i always lands under the header that was written at position i.
    """

    names: tuple[str, ...]
    positions: tuple[int, ...]
    width: int

    @classmethod
    def from_cells(cls, cells: Sequence[Any]) -> HeaderLayout:
        names: list[str] = []
        positions: list[int] = []
        seen: set[str] = set()
        for index, cell in enumerate(cells):
            name = clean_header(cell)
            if not name:
                continue
            if name in seen:
                logger.warning("Duplicate header ignored", header=name, column=index + 1)
                continue
            seen.add(name)
            names.append(name)
            positions.append(index)

        if not names:
            raise MissingHeadersError("The file does not contain valid headers")
        return cls(names=tuple(names), positions=tuple(positions), width=len(cells))

    def build_row(self, values: Sequence[str]) -> RowRecord:
        """Map values onto headers; missing trailing values become ''."""
        row = {
            name: (values[position] if position < len(values) else "")
            for name, position in zip(self.names, self.positions)
        }
        return MappingProxyType(row)


def clean_header(cell: Any) -> str:
    """Stringify, trim and strip stray surrounding quotes from a header cell."""
    if cell is None:
        return ""
    text = str(cell).strip()
    if len(text) >= 2 and text[0] == text[-1] == '"':
        text = text[1:-1].strip()
    return text


@dataclass
class ExtractedFile:
    """Rows pulled from one upload, in file order."""

    filename: str
    file_format: FileFormat
    headers: tuple[str, ...]
    column_count: int
    rows: list[RowRecord] = field(default_factory=list)
    row_widths: list[int] = field(default_factory=list)
    skipped_records: list[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self, limit: int | None = None) -> dict[str, Any]:
        rows = self.rows if limit is None else self.rows[:limit]
        return {
            "filename": self.filename,
            "format": self.file_format.value,
            "headers": list(self.headers),
            "total_rows": self.row_count,
            "rows": [dict(row) for row in rows],
            "skipped_records": list(self.skipped_records),
        }


class BaseExtractor(ABC):
    """Base interface for tabular file extractors."""

    file_format: FileFormat

    @abstractmethod
    def extract(self, content: bytes, filename: str) -> ExtractedFile:
        """Parse the raw bytes of an upload into header-keyed rows."""
        ...

    def supports_format(self, format_type: str) -> bool:
        """Return True if this extractor handles the given format type."""
        return format_type == self.file_format
