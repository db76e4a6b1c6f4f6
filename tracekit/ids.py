"""Identifiers for traces and spans."""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass

_U32_MASK = (1 << 32) - 1
_U64_MAX = (1 << 64) - 1
_U128_MAX = (1 << 128) - 1


@dataclass(frozen=True, order=True)
class TraceId:
    """An identifier for a trace, which groups a set of related spans together."""

    value: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.value <= _U128_MAX:
            raise ValueError(f"trace id out of 128-bit range: {self.value}")

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value


class _IdGenerator(threading.local):
    """Per-thread state: a random 32-bit prefix and a wrapping 32-bit counter."""

    def __init__(self) -> None:
        self.prefix = secrets.randbits(32)
        self.suffix = 0

    def next(self) -> int:
        self.suffix = (self.suffix + 1) & _U32_MASK
        return (self.prefix << 32) | self.suffix


_GENERATOR = _IdGenerator()


@dataclass(frozen=True, order=True)
class SpanId:
    """An identifier for a span within a trace."""

    value: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.value <= _U64_MAX:
            raise ValueError(f"span id out of 64-bit range: {self.value}")

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    @classmethod
    def next_id(cls) -> SpanId:
        """Return a fresh span id, unique across threads with high probability."""
        return cls(_GENERATOR.next())