"""Key classification and path markers for XHash containers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

# Auto-index accounting only sees unsigned digit strings; index-only
# enumeration (sorted export, renumbering) also accepts a leading minus.
_INDEX_RE = re.compile(r"[0-9]+")
_SIGNED_INDEX_RE = re.compile(r"-?[0-9]+")


class _AsXHash:
    __slots__ = ()

    def __repr__(self) -> str:
        return "AS_XHASH"


class _IndexKeys:
    __slots__ = ()

    def __repr__(self) -> str:
        return "INDEX_KEYS"


AS_XHASH = _AsXHash()
"""Final path segment forcing the path to end in a container."""

INDEX_KEYS = _IndexKeys()
"""Stand-in for every index key in ascending order (see ``XHash.reorder``)."""


@dataclass(frozen=True)
class Ref:
    """Indirection that makes ``push`` store ``value`` verbatim."""

    value: Any


def _literal(key: Any) -> Optional[str]:
    # Follows dict key equality: True is 1 and 2.0 is 2.
    if isinstance(key, str):
        return key
    if isinstance(key, int):
        return str(int(key))
    if isinstance(key, float) and key.is_integer():
        return str(int(key))
    return None


def index_value(key: Any) -> Optional[int]:
    """Return the auto-index value of ``key`` or ``None`` if it is not one."""

    text = _literal(key)
    if text is not None and _INDEX_RE.fullmatch(text):
        return int(text)
    return None


def signed_index_value(key: Any) -> Optional[int]:
    """Return the integer value of an index-only key (sign allowed)."""

    text = _literal(key)
    if text is not None and _SIGNED_INDEX_RE.fullmatch(text):
        return int(text)
    return None


def is_path(key: Any) -> bool:
    return isinstance(key, list)


__all__ = [
    "AS_XHASH",
    "INDEX_KEYS",
    "Ref",
    "index_value",
    "is_path",
    "signed_index_value",
]
