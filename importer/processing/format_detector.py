"""
Format Detector — identifies the file type from the upload's extension.
"""

from __future__ import annotations

from pathlib import PurePath

from importer.core.config import settings
from importer.core.constants import FileFormat
from importer.pipeline.errors import InvalidInputError, UnsupportedFormatError


def file_extension(filename: str) -> str:
    """Lower-cased extension without the dot, '' when there is none."""
    return PurePath(filename).suffix.lstrip(".").lower()


def detect_format(filename: str | None, supported: list[str] | None = None) -> FileFormat:
    """
    Return the FileFormat for an upload.

    Raises:
        InvalidInputError: filename is missing or blank.
        UnsupportedFormatError: extension is not accepted.
    """
    if filename is None or not filename.strip():
        raise InvalidInputError("File name is required")

    accepted = [fmt.lower() for fmt in (supported or settings.SUPPORTED_FORMATS)]
    extension = file_extension(filename.strip())

    if extension not in accepted or extension not in {fmt.value for fmt in FileFormat}:
        raise UnsupportedFormatError(
            f"Unsupported file format: '{extension or '(none)'}'. "
            f"Accepted formats: {', '.join(accepted)}",
            extension=extension,
        )
    return FileFormat(extension)
