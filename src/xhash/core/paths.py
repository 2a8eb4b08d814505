"""Path traversal and auto-vivification across nested XHash containers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from xhash.contracts.error import BadInputError

from .keys import AS_XHASH

if TYPE_CHECKING:  # pragma: no cover
    from .xhash import XHash


@dataclass
class PathResult:
    """Terminal hop of a traversal.

    ``container`` is ``None`` when the path does not exist and was not
    created. Otherwise the caller applies its single-key operation to
    ``key`` within ``container``; ``value`` is what the walk found (or
    vivified) there.
    """

    container: Optional["XHash"]
    key: Any
    value: Any


def traverse(root: "XHash", path: Any, *, op: str = "", vivify: Optional[bool] = None) -> PathResult:
    """Walk (or build) ``path`` starting at ``root``.

    ``path`` is a list of keys; ``None`` segments resolve to the next index
    of the container they are applied to, and ``AS_XHASH`` as the last
    segment forces a container at the end of a ``fetch`` path. Store
    operations vivify by default; fetch, exists and delete do not.

    Vivification is destructive: a non-container value met before the end of
    the path is replaced by a new, empty container.
    """

    segments = list(path) if isinstance(path, list) else [path]
    container = root
    key: Any = None
    value: Any = None
    want_xhash = False

    if segments and segments[-1] is AS_XHASH:
        if op == "fetch":
            vivify = want_xhash = True
        segments.pop()

    if op == "store" and vivify is None:
        vivify = True

    while segments:
        key = segments.pop(0)
        if isinstance(key, list):
            raise BadInputError("path segments must be keys, not nested paths")
        descend = bool(segments) or want_xhash
        if key is None or not container.exists(key):
            if not vivify:
                return PathResult(container=None, key=None, value=None)
            if key is None:
                key = container.next_index()
            if descend:
                value = root.new()
                container.store(key, value)
            else:
                value = None
        else:
            value = container.fetch(key)
            if descend and not root.is_xhash(value):
                value = root.new()
                container.store(key, value)
        if segments:
            container = value

    if key is None:
        key = container.next_index()
    return PathResult(container=container, key=key, value=value)


__all__ = ["PathResult", "traverse"]
