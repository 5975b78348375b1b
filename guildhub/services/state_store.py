"""OAuth ``state`` store: single-use values guarding the authorize round trip."""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

STATE_TTL_SECONDS = 600


@runtime_checkable
class StateStore(Protocol):
    """Interface for OAuth state persistence."""

    async def put_state(self, state: str, ttl_seconds: int = STATE_TTL_SECONDS) -> None: ...

    async def validate_state(self, state: str) -> bool: ...


class MemoryStateStore:
    """In-memory dict (single-process safe)."""

    def __init__(self) -> None:
        self._states: dict[str, float] = {}

    async def put_state(self, state: str, ttl_seconds: int = STATE_TTL_SECONDS) -> None:
        self._prune()
        self._states[state] = time.time() + ttl_seconds

    async def validate_state(self, state: str) -> bool:
        expires_at = self._states.pop(state, None)
        if expires_at is None:
            return False
        return time.time() < expires_at

    def _prune(self) -> None:
        now = time.time()
        for key in [k for k, exp in self._states.items() if exp <= now]:
            del self._states[key]

    def clear(self) -> None:
        self._states.clear()


state_store = MemoryStateStore()


def get_state_store() -> StateStore:
    return state_store
