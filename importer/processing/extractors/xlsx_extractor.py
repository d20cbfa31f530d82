"""
Excel (.xlsx) extraction — first worksheet only, row 1 is the header.

Cells are rendered to the same strings a user would type in a CSV:
    100.0            → "100"
    2024-03-05 00:00 → "2024-03-05"   (date-formatted cells)
    TRUE             → "true"
    =A2*2            → cached numeric result, else the formula's string value
"""

from __future__ import annotations

import io
import zipfile
from datetime import date, datetime, time
from typing import Any

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from importer.core.constants import FileFormat
from importer.core.logging import get_logger
from importer.pipeline.errors import InvalidInputError, MissingHeadersError
from importer.processing.extractors.base import BaseExtractor, ExtractedFile, HeaderLayout

logger = get_logger(__name__)


def format_number(value: int | float) -> str:
    """Integral numbers lose the fractional part; everything else uses str()."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_value(value: Any) -> str:
    """Stringify a plain (non-formula) cell value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def _is_formula(cell: Any) -> bool:
    return getattr(cell, "data_type", None) == "f"


def _formula_text(value: Any) -> str:
    # ArrayFormula / DataTableFormula keep the expression in .text
    return str(getattr(value, "text", value))


def used_width(values: list[str]) -> int:
    width = 0
    for index, value in enumerate(values):
        if value.strip():
            width = index + 1
    return width


class XlsxExtractor(BaseExtractor):
    """Reads the first sheet of a workbook into header-keyed rows."""

    file_format = FileFormat.XLSX

    def extract(self, content: bytes, filename: str) -> ExtractedFile:
        log = logger.bind(filename=filename)

        rows = self._load_rows(content, filename, data_only=False)
        if not rows:
            raise MissingHeadersError(f"File '{filename}' has an empty first sheet")

        cached_rows: list[tuple] | None = None
        if any(_is_formula(cell) for row in rows for cell in row):
            cached_rows = self._load_rows(content, filename, data_only=True)

        header_cells = [format_value(cell.value) for cell in rows[0]]
        header_cells = header_cells[: used_width(header_cells)]
        layout = HeaderLayout.from_cells(header_cells)

        extracted = ExtractedFile(
            filename=filename,
            file_format=self.file_format,
            headers=layout.names,
            column_count=layout.width,
        )

        for row_index in range(1, len(rows)):
            cached = cached_rows[row_index] if cached_rows and row_index < len(cached_rows) else ()
            values = [
                self._render_cell(cell, cached[col] if col < len(cached) else None)
                for col, cell in enumerate(rows[row_index])
            ]
            width = used_width(values)
            if width == 0:
                continue
            extracted.rows.append(layout.build_row(values))
            extracted.row_widths.append(width)

        log.info("XLSX extracted", headers=len(extracted.headers), rows=extracted.row_count)
        return extracted

    # ─── Helpers ───────────────────────────────────────

    @staticmethod
    def _load_rows(content: bytes, filename: str, *, data_only: bool) -> list[tuple]:
        try:
            wb = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=data_only)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
            raise InvalidInputError(
                f"File '{filename}' is not a readable Excel workbook",
                details={"error": str(exc)},
            ) from exc

        try:
            if not wb.worksheets:
                return []
            sheet = wb.worksheets[0]
            return [tuple(row) for row in sheet.iter_rows()]
        finally:
            wb.close()

    @staticmethod
    def _render_cell(cell: Any, cached_cell: Any) -> str:
        if not _is_formula(cell):
            return format_value(cell.value)

        cached = getattr(cached_cell, "value", None)
        if isinstance(cached, (int, float)) and not isinstance(cached, bool):
            return format_number(cached)
        if cached is not None:
            return format_value(cached)
        return _formula_text(cell.value)
