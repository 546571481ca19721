"""Correlation id generators for outbound requests.

The HTTP client takes an id generator at construction so tests can swap the
random default for a predictable sequence.
"""

from __future__ import annotations

import itertools
import secrets
import threading
from typing import Protocol


class IdGenerator(Protocol):
    """Callable returning a fresh correlation id on every call."""

    def __call__(self) -> str: ...


def random_id() -> str:
    """Return 128 random bits formatted as a hyphenated hex string (8-4-4-4-12)."""
    b = secrets.token_bytes(16)
    return f"{b[0:4].hex()}-{b[4:6].hex()}-{b[6:8].hex()}-{b[8:10].hex()}-{b[10:].hex()}"


class SequentialIds:
    """Deterministic generator yielding ``{prefix}1``, ``{prefix}2``, ...

    Safe to share between threads.
    """

    def __init__(self, prefix: str = "", start: int = 1) -> None:
        self._prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            n = next(self._counter)
        return f"{self._prefix}{n}"
