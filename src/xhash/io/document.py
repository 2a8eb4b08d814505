"""JSON document codec for XHash trees (format ``xhash.v1``)."""

from __future__ import annotations

import json
from collections.abc import Mapping
from functools import lru_cache
from importlib import resources
from typing import Any, Callable, Dict, List

from jsonschema import Draft202012Validator

from xhash.contracts.error import BadInputError
from xhash.core.xhash import XHash

FORMAT = "xhash.v1"
SCHEMA_RESOURCE = "xhash_document.schema.json"


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    schema_resource = resources.files("xhash.contracts") / SCHEMA_RESOURCE
    with schema_resource.open(encoding="utf-8") as stream:
        return Draft202012Validator(json.load(stream))


def _document_key(key: Any) -> Any:
    if isinstance(key, bool) or not isinstance(key, (str, int)):
        raise BadInputError(f"Key {key!r} cannot be stored in a document (str or int required)")
    return key


def _plain(value: Any) -> Any:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, Mapping) and all(isinstance(key, str) for key in value):
        return {key: _plain(item) for key, item in value.items()}
    raise BadInputError(
        f"Value of type {type(value).__name__} cannot be stored in a document",
        hint="Only JSON values and nested XHash containers are persisted",
    )


def _encode_entries(container: XHash) -> List[Dict[str, Any]]:
    entries: List[Dict[str, Any]] = []
    for pair in container.as_pairs():
        ((key, value),) = pair.items()
        if isinstance(value, XHash):
            entries.append({"key": _document_key(key), "xhash": _encode_entries(value)})
        else:
            entries.append({"key": _document_key(key), "value": _plain(value)})
    return entries


def to_document(container: XHash) -> Dict[str, Any]:
    """Return the JSON-ready document describing ``container`` and its subtree."""

    return {"format": FORMAT, "entries": _encode_entries(container)}


def validate_document(document: Any) -> None:
    errors = sorted(
        _validator().iter_errors(document), key=lambda err: [str(part) for part in err.path]
    )
    if errors:
        first = errors[0]
        raise BadInputError(
            f"Invalid XHash document: {first.message} @ {list(first.path)}",
            hint=f"{len(errors)} schema error(s)",
        )


def _decode_entries(entries: List[Dict[str, Any]], target: XHash) -> XHash:
    for entry in entries:
        if "xhash" in entry:
            target.store(entry["key"], _decode_entries(entry["xhash"], target.new()))
        else:
            target.store(entry["key"], entry["value"])
    return target


def from_document(document: Any, *, factory: Callable[[], XHash] = XHash) -> XHash:
    """Validate ``document`` and rebuild the tree it describes, in order."""

    validate_document(document)
    return _decode_entries(document["entries"], factory())


def dumps_document(container: XHash, *, indent: int | None = None) -> str:
    return json.dumps(to_document(container), indent=indent, ensure_ascii=False)


def loads_document(text: str) -> XHash:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise BadInputError(f"Invalid JSON document: {exc}") from exc
    return from_document(document)


__all__ = [
    "FORMAT",
    "dumps_document",
    "from_document",
    "loads_document",
    "to_document",
    "validate_document",
]
