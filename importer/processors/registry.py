"""
ProcessorRegistry — maps an entity-type tag to its EntityProcessor.

Built once at startup from the full set of processor variants and read
concurrently by every running job.  rebuild() swaps the whole table,
which tests use to start from a known set.

To add a new entity type:
    1. Subclass EntityProcessor in importer/processors/
    2. Add its column contract to Settings.ENTITY_COLUMNS
    3. Add its rules to FieldValidator
    4. Construct it in build_default_registry() below
"""

from __future__ import annotations

import threading
from typing import Any, Iterable, Mapping

from importer.core.logging import get_logger
from importer.pipeline.errors import ProcessorResolutionError
from importer.processors.base import EntityProcessor, EntityStore
from importer.processors.client import ClientProcessor
from importer.processors.product import ProductProcessor
from importer.processors.user import UserProcessor
from importer.validation.business_rules import FieldValidator

logger = get_logger(__name__)


def _key(entity_type: str) -> str:
    return entity_type.strip().lower()


class ProcessorRegistry:
    """
    Resolves an entity type to a processor.

    Lookup is an exact match after trimming and lower-casing both sides;
    there is no fallback processor.
    """

    def __init__(self, processors: Iterable[EntityProcessor[Any]] = ()) -> None:
        self._lock = threading.Lock()
        self._processors: dict[str, EntityProcessor[Any]] = {}
        for processor in processors:
            self.register(processor)

    def register(self, processor: EntityProcessor[Any]) -> None:
        key = _key(processor.entity_type)
        with self._lock:
            if key in self._processors:
                raise ProcessorResolutionError(
                    f"A processor for '{processor.entity_type}' is already registered",
                    supported=sorted(self._processors),
                )
            table = dict(self._processors)
            table[key] = processor
            self._processors = table
        logger.debug("Processor registered", entity_type=key, processor=type(processor).__name__)

    def resolve(self, entity_type: str) -> EntityProcessor[Any]:
        """
        Return the processor for the given entity type.

        Raises:
            ProcessorResolutionError: no processor declares that type.
        """
        table = self._processors
        processor = table.get(_key(entity_type or ""))
        if processor is None:
            supported = sorted(table)
            raise ProcessorResolutionError(
                f"No processor for entity type '{entity_type}'. "
                f"Supported types: {', '.join(supported) or '(none)'}",
                supported=supported,
            )
        return processor

    def supported_types(self) -> list[str]:
        """Return all registered entity types."""
        return sorted(self._processors)

    def rebuild(self, processors: Iterable[EntityProcessor[Any]]) -> None:
        """Replace every registration at once."""
        table: dict[str, EntityProcessor[Any]] = {}
        for processor in processors:
            key = _key(processor.entity_type)
            if key in table:
                raise ProcessorResolutionError(
                    f"A processor for '{processor.entity_type}' is listed twice",
                    supported=sorted(table),
                )
            table[key] = processor
        with self._lock:
            self._processors = table
        logger.info("Processor registry rebuilt", entity_types=sorted(table))

    def __contains__(self, entity_type: str) -> bool:
        return _key(entity_type) in self._processors

    def __len__(self) -> int:
        return len(self._processors)


def build_default_registry(
    stores: Mapping[str, EntityStore[Any]],
    validator: FieldValidator | None = None,
) -> ProcessorRegistry:
    """
    Registry with the client, product and user processors.

    Args:
        stores: persistence adapter per entity type tag
                ("cliente", "producto", "usuario").
    """
    validator = validator or FieldValidator()
    processors: list[EntityProcessor[Any]] = []
    for processor_cls in (ClientProcessor, ProductProcessor, UserProcessor):
        store = stores.get(processor_cls.entity_type)
        if store is None:
            raise ProcessorResolutionError(
                f"No store configured for entity type '{processor_cls.entity_type}'",
                supported=sorted(stores),
            )
        processors.append(processor_cls(store, validator))
    return ProcessorRegistry(processors)
