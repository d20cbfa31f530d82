"""
Legacy Excel (.xls) extraction. First worksheet only; row 1 is the header.

xlrd only exposes the cached result of a formula, so formula cells
render like any other cell of the result's type.  Rendering otherwise
matches the .xlsx extractor.
"""

from __future__ import annotations

import xlrd
from xlrd.biffh import error_text_from_code
from xlrd.compdoc import CompDocError
from xlrd.sheet import Cell

from importer.core.constants import FileFormat
from importer.core.logging import get_logger
from importer.pipeline.errors import InvalidInputError, MissingHeadersError
from importer.processing.extractors.base import BaseExtractor, ExtractedFile, HeaderLayout
from importer.processing.extractors.xlsx_extractor import format_number, format_value, used_width

logger = get_logger(__name__)


def render_cell(cell: Cell, datemode: int) -> str:
    """String form of one xlrd cell."""
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return ""
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return format_value(xlrd.xldate_as_datetime(cell.value, datemode))
        except (xlrd.xldate.XLDateError, ValueError, OverflowError):
            return format_number(cell.value)
    if cell.ctype == xlrd.XL_CELL_NUMBER:
        return format_number(cell.value)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return format_value(bool(cell.value))
    if cell.ctype == xlrd.XL_CELL_ERROR:
        return error_text_from_code.get(cell.value, "")
    return str(cell.value)


class XlsExtractor(BaseExtractor):
    """Reads the first sheet of a BIFF workbook into header-keyed rows."""

    file_format = FileFormat.XLS

    def extract(self, content: bytes, filename: str) -> ExtractedFile:
        try:
            book = xlrd.open_workbook(file_contents=content)
        except (xlrd.XLRDError, CompDocError, ValueError, OSError) as exc:
            raise InvalidInputError(
                f"File '{filename}' is not a readable Excel workbook",
                details={"error": str(exc)},
            ) from exc

        try:
            if book.nsheets == 0:
                raise MissingHeadersError(f"File '{filename}' has no worksheets")
            sheet = book.sheet_by_index(0)
            rows = [
                [render_cell(cell, book.datemode) for cell in sheet.row(index)]
                for index in range(sheet.nrows)
            ]
        finally:
            book.release_resources()

        if not rows:
            raise MissingHeadersError(f"File '{filename}' has an empty first sheet")

        layout = HeaderLayout.from_cells(rows[0][: used_width(rows[0])])
        extracted = ExtractedFile(
            filename=filename,
            file_format=self.file_format,
            headers=layout.names,
            column_count=layout.width,
        )

        for values in rows[1:]:
            width = used_width(values)
            if width == 0:
                continue
            extracted.rows.append(layout.build_row(values))
            extracted.row_widths.append(width)

        logger.info("XLS extracted", filename=filename, headers=len(extracted.headers), rows=extracted.row_count)
        return extracted
