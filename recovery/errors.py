"""Abort values for request handlers."""

from __future__ import annotations

from typing import Any


class Panic(Exception):
    """Abort the current request with an arbitrary carried value.

    Handlers raise ``Panic("reason")`` (or ``Panic(some_error)``) where a plain
    exception would lose the value's shape. RecoverMiddleware classifies the
    carried value when building the diagnostic message:

        raise Panic("!!!")        → "panic: !!!"
        raise Panic(KeyError(1))  → "panic: 1"
        raise Panic(42)           → "unknown panic"
    """

    def __init__(self, value: Any) -> None:
        super().__init__(value)
        self.value = value

    def __str__(self) -> str:
        return str(self.value)
