"""CSV extraction: comma-delimited, UTF-8, double-quote escaping."""

from __future__ import annotations

import csv
import io

from importer.core.constants import FileFormat
from importer.core.logging import get_logger
from importer.pipeline.errors import ExtractionError, InvalidInputError, MissingHeadersError
from importer.processing.extractors.base import BaseExtractor, ExtractedFile, HeaderLayout

logger = get_logger(__name__)


def _is_blank(record: list[str]) -> bool:
    return not any(cell.strip() for cell in record)


def _next_record(reader) -> list[str]:
    """Next parsed record; raises StopIteration at end of input."""
    try:
        return next(reader)
    except csv.Error as exc:
        raise ExtractionError(
            f"Line {reader.line_num}: could not be parsed ({exc})",
            row_number=reader.line_num,
        ) from exc


class CsvExtractor(BaseExtractor):
    """
    Reads the first non-blank record as the header and every later
    non-blank record as data.  Quoted fields may hold commas, newlines and
    doubled quotes.  A record the csv module rejects is logged and skipped.
    """

    file_format = FileFormat.CSV

    def __init__(self, delimiter: str = ",") -> None:
        self.delimiter = delimiter

    def extract(self, content: bytes, filename: str) -> ExtractedFile:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise InvalidInputError(
                f"File '{filename}' is not valid UTF-8 text",
                details={"position": exc.start},
            ) from exc

        reader = csv.reader(
            io.StringIO(text, newline=""),
            delimiter=self.delimiter,
            quotechar='"',
            doublequote=True,
            strict=True,
        )
        log = logger.bind(filename=filename)

        layout: HeaderLayout | None = None
        extracted: ExtractedFile | None = None

        while True:
            try:
                record = _next_record(reader)
            except StopIteration:
                break
            except ExtractionError as exc:
                log.warning("CSV record skipped", line=exc.row_number, error=str(exc.__cause__))
                if extracted is not None:
                    extracted.skipped_records.append(exc.message)
                continue

            if _is_blank(record):
                continue

            if layout is None:
                layout = HeaderLayout.from_cells(record)
                extracted = ExtractedFile(
                    filename=filename,
                    file_format=self.file_format,
                    headers=layout.names,
                    column_count=layout.width,
                )
                continue

            extracted.rows.append(layout.build_row(record))
            extracted.row_widths.append(len(record))

        if extracted is None:
            raise MissingHeadersError(f"File '{filename}' does not contain a header row")

        log.info(
            "CSV extracted",
            headers=len(extracted.headers),
            rows=extracted.row_count,
            skipped=len(extracted.skipped_records),
        )
        return extracted
