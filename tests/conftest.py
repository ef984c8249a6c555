from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Mapping

import pytest

from formpulse.lib.exceptions import FatalStoreFailure, StoreConstraintFailure


class MemoryStore:
    """Record store keeping records in a dict, recording every call."""

    def __init__(
        self,
        unique: tuple[str, ...] = (),
        fail_with: Exception | None = None,
    ) -> None:
        self.records: dict[int, SimpleNamespace] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.unique = unique
        self.fail_with = fail_with
        self.next_id = 1

    def identity_of(self, record: Any) -> Any:
        return record.id

    def add_existing(self, **attributes: Any) -> SimpleNamespace:
        record = SimpleNamespace(id=self.next_id, **attributes)
        self.records[record.id] = record
        self.next_id += 1
        return record

    def _check(self, attributes: Mapping[str, Any], identity: Any = None) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        for name in self.unique:
            if name not in attributes:
                continue
            for record_id, record in self.records.items():
                if record_id != identity and getattr(record, name, None) == attributes[name]:
                    raise StoreConstraintFailure("This value is already taken.", name)

    async def insert(self, attributes: Mapping[str, Any]) -> SimpleNamespace:
        self.calls.append(("insert", dict(attributes)))
        self._check(attributes)
        record = SimpleNamespace(
            id=self.next_id, created_at=datetime.now(timezone.utc), **attributes
        )
        self.records[record.id] = record
        self.next_id += 1
        return record

    async def update_by_identity(
        self, identity: Any, attributes: Mapping[str, Any]
    ) -> SimpleNamespace:
        self.calls.append(("update", identity, dict(attributes)))
        record = self.records.get(identity)
        if record is None:
            raise FatalStoreFailure(f"record {identity!r} does not exist")
        self._check(attributes, identity)
        for key, value in attributes.items():
            setattr(record, key, value)
        return record


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def unique_store() -> MemoryStore:
    return MemoryStore(unique=("name",))
