"""
Shared fixtures for the importer test-suite.

Pipeline tests run against InMemoryStore instead of a database so they
can observe exactly which entities were saved and inject failures.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Callable

import pytest

from importer.core.config import Settings
from importer.core.constants import EntityType
from importer.pipeline.errors import TransientPersistenceError
from importer.processors.registry import build_default_registry
from importer.validation.business_rules import rut_check_digit

KEY_ATTRIBUTES = {
    EntityType.CLIENT.value: "rut",
    EntityType.PRODUCT.value: "codigo",
    EntityType.USER.value: "username",
}


class InMemoryStore:
    """Dict-backed stand-in for a repository store."""

    def __init__(
        self,
        key_attr: str,
        *,
        existing: tuple[str, ...] = (),
        fail_keys: tuple[str, ...] = (),
        transient_failures: int = 0,
        gate: asyncio.Event | None = None,
        on_save: Callable[[InMemoryStore], None] | None = None,
    ) -> None:
        self.key_attr = key_attr
        self.existing = set(existing)
        self.fail_keys = set(fail_keys)
        self.transient_failures = transient_failures
        self.gate = gate
        self.on_save = on_save
        self.saved: dict[str, Any] = {}
        self.save_attempts = 0

    async def exists_by_key(self, key: str) -> bool:
        return key in self.existing or key in self.saved

    async def save(self, entity: Any) -> None:
        self.save_attempts += 1
        if self.gate is not None:
            await self.gate.wait()
        key = getattr(entity, self.key_attr)
        if key in self.fail_keys:
            raise RuntimeError("disk full")
        if self.transient_failures > 0:
            self.transient_failures -= 1
            raise TransientPersistenceError("connection reset")
        self.saved[key] = entity
        if self.on_save is not None:
            self.on_save(self)


def make_settings(**overrides: Any) -> Settings:
    values = {
        "IMPORT_BATCH_SIZE": 1000,
        "IMPORT_WORKERS": 2,
        "IMPORT_QUEUE_CAPACITY": 0,
        "PERSIST_RETRY_BACKOFF_SECONDS": 0,
        "PROCESS_SWEEP_INTERVAL_SECONDS": 3600,
        "SHUTDOWN_TIMEOUT_SECONDS": 5,
    }
    values.update(overrides)
    return Settings(**values)


def valid_rut(seed: int) -> str:
    body = str(10_000_000 + seed)
    return f"{body}-{rut_check_digit(body)}"


def row(**values: str) -> MappingProxyType:
    return MappingProxyType(dict(values))


def client_rows(count: int, start: int = 0) -> list[MappingProxyType]:
    return [
        row(
            rut=valid_rut(i),
            nombre=f"Nombre{i}",
            apellido=f"Apellido{i}",
            email=f"cliente{i}@example.com",
        )
        for i in range(start, start + count)
    ]


class FakeClock:
    """Settable clock for retention tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def stores() -> dict[str, InMemoryStore]:
    return {entity: InMemoryStore(attr) for entity, attr in KEY_ATTRIBUTES.items()}


@pytest.fixture
def processor_registry(stores):
    return build_default_registry(stores)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
