"""Persistence helpers for XHash trees."""

from .document import (
    FORMAT,
    dumps_document,
    from_document,
    loads_document,
    to_document,
    validate_document,
)
from .snapshot import is_json_path, load_snapshot_any, save_snapshot_any
from .snapshot_header import (
    SnapshotDescriptor,
    SnapshotHeader,
    describe_snapshot,
    dumps_snapshot,
    loads_snapshot,
    read_snapshot,
    write_snapshot,
)

__all__ = [
    "FORMAT",
    "SnapshotDescriptor",
    "SnapshotHeader",
    "describe_snapshot",
    "dumps_document",
    "dumps_snapshot",
    "from_document",
    "is_json_path",
    "load_snapshot_any",
    "loads_document",
    "loads_snapshot",
    "read_snapshot",
    "save_snapshot_any",
    "to_document",
    "validate_document",
    "write_snapshot",
]
