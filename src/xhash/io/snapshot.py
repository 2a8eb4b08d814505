"""Snapshot file helpers: atomic saves and format-sniffing loads."""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import suppress
from pathlib import Path

from xhash.contracts.error import SnapshotIOError
from xhash.core.xhash import XHash

from .document import dumps_document, loads_document
from .snapshot_header import DEFAULT_MAX_PAYLOAD_BYTES, MAGIC, loads_snapshot, write_snapshot

logger = logging.getLogger("xhash")


def is_json_path(path: str | Path) -> bool:
    return Path(path).suffix.lower() == ".json"


def save_snapshot_any(
    container: XHash, path: str | Path, *, compress: bool = False, indent: int | None = None
) -> None:
    """Save ``container`` atomically.

    ``.json`` paths get a plain JSON document, anything else a versioned
    snapshot (gzip-compressed when ``compress`` is set or the path ends in
    ``.gz``).
    """

    target = Path(path)
    tmp = tempfile.NamedTemporaryFile(
        delete=False,
        dir=target.parent,
        prefix=f".{target.name}.",
        suffix=".tmp",
    )
    tmp_path = Path(tmp.name)
    tmp.close()
    try:
        if is_json_path(target):
            tmp_path.write_text(dumps_document(container, indent=indent) + "\n", encoding="utf-8")
        else:
            write_snapshot(tmp_path, container, compress=compress or target.name.endswith(".gz"))
        os.replace(tmp_path, target)
    except Exception:
        with suppress(FileNotFoundError):
            tmp_path.unlink()
        raise
    logger.debug("Saved snapshot %s (%d top-level keys)", target, len(container))


def load_snapshot_any(
    path: str | Path, *, max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES
) -> XHash:
    """Load a versioned snapshot, or a plain JSON document when the magic is absent."""

    blob = Path(path).read_bytes()
    if blob.startswith(MAGIC):
        return loads_snapshot(blob, max_payload_bytes=max_payload_bytes)
    logger.debug("No snapshot header in %s; reading as JSON document", path)
    try:
        text = blob.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SnapshotIOError(f"{path} is neither a snapshot nor a JSON document") from exc
    return loads_document(text)


__all__ = ["is_json_path", "load_snapshot_any", "save_snapshot_any"]
