"""Error contracts and bundled schemas for XHash."""

from .error import (
    BadInputError,
    ErrorEnvelope,
    Exit,
    InvariantError,
    PolicyError,
    SnapshotIOError,
    XHashError,
    die,
    guard_cli,
)

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
