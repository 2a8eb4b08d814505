"""Versioned, checksummed snapshot files holding an XHash document."""

from __future__ import annotations

import gzip
import hashlib
import io
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from xhash.contracts.error import SnapshotIOError
from xhash.core.xhash import XHash

from .document import dumps_document, loads_document

MAGIC = b"XHSNAP01"
HEADER_FMT = ">8s H B B H Q"  # magic, version, flags, reserved, checksum length, payload length
HEADER_SIZE = struct.calcsize(HEADER_FMT)
FLAG_GZIP = 0b00000001
DEFAULT_MAX_PAYLOAD_BYTES = 256 * 1024 * 1024


@dataclass(slots=True, frozen=True)
class SnapshotHeader:
    """Header describing the on-disk snapshot payload."""

    version: int = 1
    flags: int = 0
    checksum_len: int = 32
    payload_len: int = 0


def _blake2b(data: bytes, digest_size: int = 32) -> bytes:
    h = hashlib.blake2b(digest_size=digest_size)
    h.update(data)
    return h.digest()


def _pack_header(header: SnapshotHeader) -> bytes:
    return struct.pack(
        HEADER_FMT,
        MAGIC,
        header.version,
        header.flags,
        0,
        header.checksum_len,
        header.payload_len,
    )


def _unpack_header(data: bytes, max_payload_bytes: int) -> Tuple[SnapshotHeader, int]:
    if len(data) < HEADER_SIZE:
        raise SnapshotIOError("Snapshot header too short")
    magic, version, flags, _reserved, checksum_len, payload_len = struct.unpack(
        HEADER_FMT, data[:HEADER_SIZE]
    )
    if magic != MAGIC:
        raise SnapshotIOError("Bad snapshot magic")
    if version != 1:
        raise SnapshotIOError(f"Unsupported snapshot version {version}")
    if flags & ~FLAG_GZIP:
        raise SnapshotIOError(f"Unsupported snapshot flags: {flags:#04x}")
    if payload_len > max_payload_bytes:
        raise SnapshotIOError(
            "Snapshot payload exceeds maximum allowed size",
            hint="Raise snapshot.max_payload_bytes in the config",
        )
    return (
        SnapshotHeader(
            version=version, flags=flags, checksum_len=checksum_len, payload_len=payload_len
        ),
        HEADER_SIZE,
    )


def dumps_snapshot(container: XHash, *, compress: bool = True) -> bytes:
    """Serialize ``container`` to ``[header][checksum][payload]`` bytes."""

    payload = dumps_document(container).encode("utf-8")
    flags = 0
    if compress:
        with io.BytesIO() as buffer:
            with gzip.GzipFile(fileobj=buffer, mode="wb") as gz:
                gz.write(payload)
            payload = buffer.getvalue()
        flags |= FLAG_GZIP
    checksum = _blake2b(payload, digest_size=32)
    header = SnapshotHeader(
        version=1, flags=flags, checksum_len=len(checksum), payload_len=len(payload)
    )
    return _pack_header(header) + checksum + payload


def loads_snapshot(blob: bytes, *, max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES) -> XHash:
    """Deserialize bytes produced by :func:`dumps_snapshot`."""

    header, offset = _unpack_header(blob, max_payload_bytes)
    checksum_end = offset + header.checksum_len
    if len(blob) < checksum_end + header.payload_len:
        raise SnapshotIOError("Truncated snapshot")
    checksum = blob[offset:checksum_end]
    payload = blob[checksum_end : checksum_end + header.payload_len]
    expected = _blake2b(payload, digest_size=header.checksum_len)
    if checksum != expected:
        raise SnapshotIOError("Snapshot checksum mismatch")
    if header.flags & FLAG_GZIP:
        try:
            with gzip.GzipFile(fileobj=io.BytesIO(payload), mode="rb") as gz:
                payload = gz.read()
        except OSError as exc:
            raise SnapshotIOError(f"Corrupt gzip payload: {exc}") from exc
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise SnapshotIOError(f"Snapshot payload is not UTF-8: {exc}") from exc
    return loads_document(text)


def write_snapshot(path: Path, container: XHash, *, compress: bool = True) -> None:
    """Write a snapshot to disk, creating parent directories as needed."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(dumps_snapshot(container, compress=compress))


def read_snapshot(path: Path, *, max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES) -> XHash:
    return loads_snapshot(path.read_bytes(), max_payload_bytes=max_payload_bytes)


@dataclass(slots=True, frozen=True)
class SnapshotDescriptor:
    """Header and checksum of a snapshot file, without its payload."""

    header: SnapshotHeader
    checksum_hex: str

    @property
    def compressed(self) -> bool:
        return bool(self.header.flags & FLAG_GZIP)


def describe_snapshot(
    path: Path, *, max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES
) -> SnapshotDescriptor:
    blob = path.read_bytes()
    header, offset = _unpack_header(blob, max_payload_bytes)
    checksum_end = offset + header.checksum_len
    if len(blob) < checksum_end:
        raise SnapshotIOError("Snapshot file truncated before checksum")
    return SnapshotDescriptor(header=header, checksum_hex=blob[offset:checksum_end].hex())


__all__ = [
    "DEFAULT_MAX_PAYLOAD_BYTES",
    "MAGIC",
    "SnapshotDescriptor",
    "SnapshotHeader",
    "describe_snapshot",
    "dumps_snapshot",
    "loads_snapshot",
    "read_snapshot",
    "write_snapshot",
]
