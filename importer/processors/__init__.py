"""
Entity processors — one strategy per importable entity type.
"""

from importer.processors.base import EntityProcessor, EntityStore
from importer.processors.client import ClientProcessor
from importer.processors.product import ProductProcessor
from importer.processors.registry import ProcessorRegistry, build_default_registry
from importer.processors.user import UserProcessor

__all__ = [
    "ClientProcessor",
    "EntityProcessor",
    "EntityStore",
    "ProcessorRegistry",
    "ProductProcessor",
    "UserProcessor",
    "build_default_registry",
]
