from __future__ import annotations

import json
from pathlib import Path

import pytest

from xhash import BadInputError, xh, xhn
from xhash.contracts.error import SnapshotIOError
from xhash.io import describe_snapshot, load_snapshot_any, save_snapshot_any
from xhash.io.snapshot_header import MAGIC


def test_json_path_writes_plain_document(tmp_path: Path) -> None:
    path = tmp_path / "tree.json"
    save_snapshot_any(xhn({"t": [1, 2]}), path, indent=2)
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["format"] == "xhash.v1"
    assert load_snapshot_any(path).fetch(["t", 1]) == 2


def test_binary_path_writes_versioned_snapshot(tmp_path: Path) -> None:
    path = tmp_path / "tree.xh"
    save_snapshot_any(xh("a", "b"), path)
    assert path.read_bytes().startswith(MAGIC)
    assert describe_snapshot(path).compressed is False
    assert load_snapshot_any(path).values() == ["a", "b"]


def test_gz_suffix_forces_compression(tmp_path: Path) -> None:
    path = tmp_path / "tree.xh.gz"
    save_snapshot_any(xh("a"), path)
    assert describe_snapshot(path).compressed is True


def test_save_leaves_no_temp_files(tmp_path: Path) -> None:
    save_snapshot_any(xh("a"), tmp_path / "one.json")
    save_snapshot_any(xh("b"), tmp_path / "one.json")
    assert sorted(p.name for p in tmp_path.iterdir()) == ["one.json"]
    assert load_snapshot_any(tmp_path / "one.json").values() == ["b"]


def test_failed_save_keeps_previous_file(tmp_path: Path) -> None:
    path = tmp_path / "keep.json"
    save_snapshot_any(xh("old"), path)
    bad = xh()
    bad.store(("tuple", "key"), 1)
    with pytest.raises(BadInputError):
        save_snapshot_any(bad, path)
    assert load_snapshot_any(path).values() == ["old"]
    assert sorted(p.name for p in tmp_path.iterdir()) == ["keep.json"]


def test_load_rejects_binary_garbage(tmp_path: Path) -> None:
    path = tmp_path / "garbage.bin"
    path.write_bytes(b"\xff\xfe\x00garbage")
    with pytest.raises(SnapshotIOError):
        load_snapshot_any(path)


def test_load_rejects_non_document_json(tmp_path: Path) -> None:
    path = tmp_path / "list.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(BadInputError):
        load_snapshot_any(path)
