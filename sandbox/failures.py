"""Failure kinds reported by the bounded evaluator."""

from __future__ import annotations

import signal
from enum import Enum

TIMEOUT_MESSAGE = "Code execution timed out"


class FailureKind(str, Enum):
    SYNTAX = "syntax"
    RUNTIME = "runtime"
    TIMEOUT = "timeout"
    SANDBOX = "sandbox"

    @classmethod
    def from_reply(cls, value: object) -> "FailureKind":
        try:
            return cls(str(value))
        except ValueError:
            return cls.SANDBOX


# Signals the OS uses to stop a child that ran past its CPU allowance.
_LIMIT_SIGNALS = {
    getattr(signal, name)
    for name in ("SIGXCPU", "SIGKILL")
    if hasattr(signal, name)
}


def classify_exit(returncode: int | None) -> FailureKind:
    """Classify a child that exited without a usable reply."""
    if returncode is not None and returncode < 0 and -returncode in _LIMIT_SIGNALS:
        return FailureKind.TIMEOUT
    return FailureKind.SANDBOX


class FailureTally:
    """Counts failures by kind across a batch of executions."""

    def __init__(self) -> None:
        self.failures: dict[FailureKind, int] = {kind: 0 for kind in FailureKind}

    def record(self, kind: FailureKind | None) -> None:
        if kind is not None:
            self.failures[kind] += 1

    def total(self) -> int:
        return sum(self.failures.values())

    def most_common(self, n: int = 3) -> list[tuple[str, int]]:
        ranked = sorted(self.failures.items(), key=lambda item: item[1], reverse=True)
        return [(kind.value, count) for kind, count in ranked[:n] if count]
