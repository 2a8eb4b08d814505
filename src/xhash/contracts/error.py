"""Error types, exit codes and JSON error envelopes for XHash."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from functools import wraps
from typing import Any, NoReturn, TypeVar

logger = logging.getLogger(__name__)
T = TypeVar("T")


class Exit(IntEnum):
    """Stable exit codes for the ``xhash`` command."""

    OK = 0
    BAD_INPUT = 2
    INVARIANT = 3
    POLICY = 4
    IO = 5


@dataclass(slots=True)
class ErrorEnvelope:
    """Machine-readable error written to stderr on command failure."""

    error: str
    detail: str
    hint: str | None = None

    def to_json(self) -> str:
        payload = {"error": self.error, "detail": self.detail}
        if self.hint:
            payload["hint"] = self.hint
        return json.dumps(payload, ensure_ascii=False)


def die(code: Exit, kind: str, detail: str, hint: str | None = None) -> NoReturn:
    """Write an error envelope to stderr and exit with ``code``."""

    env = ErrorEnvelope(error=kind, detail=detail, hint=hint)
    sys.stderr.write(env.to_json() + "\n")
    try:
        sys.stderr.flush()
    finally:
        sys.exit(int(code))


class XHashError(Exception):
    """Base class for usage errors raised by XHash containers and tools.

    Each subclass fixes the exit code and envelope label used by
    ``guard_cli`` and may supply a default hint for the envelope.
    """

    exit_code: Exit = Exit.POLICY
    label = "Unhandled"
    default_hint: str | None = None

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint if hint is not None else self.default_hint


class BadInputError(XHashError):
    """Malformed arguments: non-sequence bulk inserts, non-unique remaps, bad documents."""

    exit_code = Exit.BAD_INPUT
    label = "BadInput"


class PolicyError(XHashError):
    """Operation refers to a key the container does not hold (anchor, reorder reference)."""

    label = "Policy"
    default_hint = "Anchor and reference keys must already exist; list them with 'xhash keys'"


class InvariantError(XHashError):
    """Ring verification found a broken link, cache or emptiness invariant."""

    exit_code = Exit.INVARIANT
    label = "Invariant"
    default_hint = "Rebuild the snapshot from an exported document"


class SnapshotIOError(XHashError):
    """Snapshot file could not be read, written or decoded."""

    exit_code = Exit.IO
    label = "IO"


def guard_cli(fn: Callable[..., T]) -> Callable[..., T]:
    """Turn XHash errors raised by a command handler into envelopes and exit codes."""

    @wraps(fn)
    def _wrapped(*args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except XHashError as exc:
            die(exc.exit_code, exc.label, str(exc), hint=exc.hint)
        except FileNotFoundError as exc:
            die(Exit.IO, "FileNotFound", str(exc))
        except Exception as exc:  # pragma: no cover - last resort for the CLI
            logger.exception("Unhandled command exception")
            die(Exit.POLICY, "Unhandled", f"{type(exc).__name__}: {exc}")

    return _wrapped


__all__ = [
    "Exit",
    "ErrorEnvelope",
    "XHashError",
    "BadInputError",
    "PolicyError",
    "InvariantError",
    "SnapshotIOError",
    "guard_cli",
    "die",
]
