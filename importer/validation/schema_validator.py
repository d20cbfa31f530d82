"""
Structural validation of an upload, run before any row is mapped.

Runs synchronously on the request path as a fast-fail gate.  It never
looks at field values; that is business_rules' job.
"""

from __future__ import annotations

from typing import Iterable

from importer.core.config import Settings, settings as default_settings
from importer.core.constants import FIRST_DATA_ROW_NUMBER
from importer.core.logging import get_logger
from importer.pipeline.errors import InputError
from importer.processing.extractors import extract_file
from importer.processing.extractors.base import ExtractedFile
from importer.validation.outcome import ValidationOutcome

logger = get_logger(__name__)


def normalize_header(name: str) -> str:
    return name.strip().lower()


def _unknown_entity(entity_type: str, config: Settings) -> ValidationOutcome:
    supported = ", ".join(sorted(config.ENTITY_COLUMNS))
    return ValidationOutcome.failure(
        f"Unknown entity type '{entity_type}'. Supported types: {supported}"
    )


def validate_headers(
    headers: Iterable[str],
    entity_type: str,
    config: Settings | None = None,
) -> ValidationOutcome:
    """Check required-column coverage; extra columns only warn."""
    config = config or default_settings
    if entity_type.strip().lower() not in config.ENTITY_COLUMNS:
        return _unknown_entity(entity_type, config)

    required = config.required_columns(entity_type.strip())
    known = {normalize_header(col) for col in required + config.optional_columns(entity_type.strip())}

    present = [h for h in headers if h.strip()]
    present_normalized = {normalize_header(h) for h in present}

    errors = [
        f"Missing required column: '{column}'"
        for column in required
        if normalize_header(column) not in present_normalized
    ]

    extras = [h.strip() for h in present if normalize_header(h) not in known]
    warnings = []
    if extras:
        warnings.append(f"Extra columns found (will be ignored): {', '.join(extras)}")

    return ValidationOutcome.build(errors=errors, warnings=warnings)


def validate_structure(
    extracted: ExtractedFile,
    entity_type: str,
    config: Settings | None = None,
) -> ValidationOutcome:
    """
    Header check plus a sample-based shape check.

    Only the first STRUCTURE_SAMPLE_ROWS data rows are inspected for
    width mismatches; an empty body or a body larger than the entity's
    record cap is an error.
    """
    config = config or default_settings
    outcome = validate_headers(extracted.headers, entity_type, config)
    if entity_type.strip().lower() not in config.ENTITY_COLUMNS:
        return outcome

    errors: list[str] = []
    warnings: list[str] = []

    sample = extracted.row_widths[: config.STRUCTURE_SAMPLE_ROWS]
    for ordinal, width in enumerate(sample):
        if width != extracted.column_count:
            warnings.append(
                f"Row {ordinal + FIRST_DATA_ROW_NUMBER}: wrong number of columns "
                f"(expected {extracted.column_count}, found {width})"
            )

    if extracted.row_count == 0:
        errors.append("The file has headers only; no data rows found")

    max_records = config.max_records(entity_type.strip())
    if max_records is not None and extracted.row_count > max_records:
        errors.append(
            f"The file has {extracted.row_count} records; "
            f"the limit for '{entity_type}' is {max_records}"
        )

    warnings.extend(extracted.skipped_records)

    result = outcome.merge(ValidationOutcome.build(errors=errors, warnings=warnings))
    logger.info(
        "Structure validated",
        filename=extracted.filename,
        entity_type=entity_type,
        valid=result.valid,
        errors=len(result.errors),
        warnings=len(result.warnings),
    )
    return result


def validate_upload(
    filename: str | None,
    content: bytes,
    entity_type: str,
    config: Settings | None = None,
) -> ValidationOutcome:
    """Extract and validate an upload, reporting input errors as an outcome."""
    config = config or default_settings
    try:
        extracted = extract_file(filename, content, config.MAX_FILE_SIZE_BYTES)
    except InputError as exc:
        return ValidationOutcome.failure(str(exc))

    outcome = validate_structure(extracted, entity_type, config)
    info = f"{extracted.row_count} data rows found in '{extracted.filename}'"
    return outcome.merge(ValidationOutcome.build(infos=[info]))
