"""
In-memory attempt store for the login rate limiter.

Why: Keep limiter bookkeeping behind a tiny interface so a shared store (e.g.
Redis or a DB table) can replace the process-local dict in multi-instance
deployments without touching the limiter rules.

Note: The in-memory store is not thread-safe; concurrent mutation from
several request handlers may lose an increment.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol


@dataclass
class AttemptRecord:
    count: int
    last_attempt: float
    blocked: bool = False


class AttemptStore(Protocol):
    def get(self, identifier: str) -> Optional[AttemptRecord]: ...

    def put(self, identifier: str, record: AttemptRecord) -> None: ...

    def delete(self, identifier: str) -> None: ...

    def purge(self, before: float) -> int: ...


class InMemoryAttemptStore:
    def __init__(self):
        self._data: Dict[str, AttemptRecord] = {}

    def get(self, identifier: str) -> Optional[AttemptRecord]:
        return self._data.get(identifier)

    def put(self, identifier: str, record: AttemptRecord) -> None:
        self._data[identifier] = record

    def delete(self, identifier: str) -> None:
        self._data.pop(identifier, None)

    def purge(self, before: float) -> int:
        """Drop records whose last attempt is older than `before`; return how many."""
        stale = [key for key, record in self._data.items() if record.last_attempt < before]
        for key in stale:
            del self._data[key]
        return len(stale)
