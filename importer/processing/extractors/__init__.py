"""
Row extraction entry points.

    extracted = extract_file("clients.csv", raw_bytes)
    for row in extracted.rows:
        row["email"]
"""

from __future__ import annotations

from typing import BinaryIO

from importer.core.config import settings
from importer.core.constants import FileFormat
from importer.pipeline.errors import EmptyFileError, FileTooLargeError, InvalidInputError
from importer.processing.extractors.base import BaseExtractor, ExtractedFile, RowRecord
from importer.processing.extractors.csv_extractor import CsvExtractor
from importer.processing.extractors.xls_extractor import XlsExtractor
from importer.processing.extractors.xlsx_extractor import XlsxExtractor
from importer.processing.format_detector import detect_format

EXTRACTORS: dict[FileFormat, BaseExtractor] = {
    FileFormat.CSV: CsvExtractor(),
    FileFormat.XLSX: XlsxExtractor(),
    FileFormat.XLS: XlsExtractor(),
}

MAX_PREVIEW_ROWS = 100


def read_source(source: bytes | bytearray | BinaryIO) -> bytes:
    """Accept raw bytes or a binary file handle."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if hasattr(source, "read"):
        data = source.read()
        if isinstance(data, str):
            raise InvalidInputError("File handle must be opened in binary mode")
        return data
    raise InvalidInputError(f"Unsupported file source: {type(source).__name__}")


def check_size(content: bytes, filename: str, max_bytes: int | None = None) -> None:
    limit = settings.MAX_FILE_SIZE_BYTES if max_bytes is None else max_bytes
    if not content:
        raise EmptyFileError(f"File '{filename}' is empty")
    if len(content) > limit:
        raise FileTooLargeError(
            f"File '{filename}' is {len(content)} bytes; the limit is {limit} bytes",
            details={"size": len(content), "limit": limit},
        )


def extract_file(
    filename: str | None,
    source: bytes | BinaryIO,
    max_bytes: int | None = None,
) -> ExtractedFile:
    """
    Detect the format from the filename and parse the upload.

    Raises:
        InputError subclasses for a missing name, unsupported extension,
        empty or oversized content, or content with no headers.
    """
    file_format = detect_format(filename)
    content = read_source(source)
    check_size(content, filename, max_bytes)
    return EXTRACTORS[file_format].extract(content, filename)


def preview_file(
    filename: str | None,
    source: bytes | BinaryIO,
    limit: int | None = None,
    max_bytes: int | None = None,
) -> dict:
    """First rows of an upload, for showing the user what will be imported."""
    size = settings.PREVIEW_ROWS if limit is None else limit
    size = max(1, min(size, MAX_PREVIEW_ROWS))
    return extract_file(filename, source, max_bytes).to_dict(limit=size)


__all__ = [
    "BaseExtractor",
    "CsvExtractor",
    "ExtractedFile",
    "RowRecord",
    "XlsExtractor",
    "XlsxExtractor",
    "extract_file",
    "preview_file",
]
