"""Ordered hash with automatic index keys and nested key-path traversal."""

from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from xhash.contracts.error import BadInputError, PolicyError

from .keys import INDEX_KEYS, Ref, index_value, is_path, signed_index_value
from .paths import PathResult, traverse

logger = logging.getLogger("xhash")


@dataclass
class _Entry:
    prev: Any
    next: Any
    value: Any


class XHash:
    """Ordered, auto-indexing hash.

    Entries form a circular doubly-linked ring stored as
    ``key -> _Entry(prev_key, next_key, value)``; the first key is the one
    after ``_last_key``. Keys may be given explicitly or allocated from the
    next free non-negative index, and values may be other XHash instances,
    which makes list keys (paths) address nested trees.

    ``_max_index`` caches the largest non-negative integer key. ``None``
    means unknown and is recomputed on the next ``next_index()`` call;
    ``-1`` means there are no index keys.
    """

    __slots__ = ("_entries", "_last_key", "_max_index")

    def __init__(self) -> None:
        self._entries: Dict[Any, _Entry] = {}
        self._last_key: Any = None
        self._max_index: Optional[int] = -1

    def new(self) -> "XHash":
        """Return an empty container of the same class (used for vivification)."""

        return type(self)()

    @staticmethod
    def is_xhash(value: Any) -> bool:
        return isinstance(value, XHash)

    # ------------------------------------------------------------------
    # Single-key and path primitives
    # ------------------------------------------------------------------
    def traverse(self, path: Any, *, op: str = "", vivify: Optional[bool] = None) -> PathResult:
        return traverse(self, path, op=op, vivify=vivify)

    def fetch(self, key: Any) -> Any:
        """Return the value at ``key`` (or path), ``None`` when absent."""

        if is_path(key):
            return traverse(self, key, op="fetch").value
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def store(self, key: Any, value: Any, *, nested: bool = False) -> None:
        """Store ``value`` at ``key`` (or path).

        ``None`` and ``[]`` allocate the next index. Existing keys keep their
        position; new keys are linked at the end. With ``nested=True`` raw
        mappings, lists and tuples are converted into XHash trees first.
        """

        if is_path(key) and key:
            result = traverse(self, key, op="store")
            assert result.container is not None
            result.container.store(result.key, value, nested=nested)
            return

        if key is None or is_path(key):
            key = self.next_index()
        if nested:
            value = self._nest(value)

        entry = self._entries.get(key)
        if entry is not None:
            entry.value = value
            return

        last = self._last_key
        if last is None:
            self._entries[key] = _Entry(key, key, value)
        else:
            first = self._entries[last].next
            self._entries[key] = _Entry(last, first, value)
            self._entries[last].next = key
            self._entries[first].prev = key
        self._last_key = key

        idx = index_value(key)
        if idx is not None and idx >= self.next_index():
            self._max_index = idx

    def _nest(self, value: Any) -> Any:
        if isinstance(value, XHash):
            return value
        if isinstance(value, Mapping):
            return self.new().push_all([value], nested=True)
        if isinstance(value, (list, tuple)):
            return self.new().push_all(value, nested=True)
        return value

    def delete(self, *keys: Any, to: Any = None) -> Any:
        """Remove keys and return the last removed value (``None`` if absent).

        A single list argument is a path. Several local keys may be removed at
        once; with ``to`` the removed pairs are collected into a list (as
        ``{key: value}``), a mutable mapping or another XHash, and ``to`` is
        returned instead.
        """

        if len(keys) == 1 and is_path(keys[0]):
            result = traverse(self, keys[0], op="delete")
            if result.container is None:
                return None
            return result.container.delete(result.key)

        removed = None
        for key in keys:
            entry = self._entries.get(key)
            if entry is None:
                continue
            self._unlink(key, entry)
            if isinstance(to, list):
                to.append({key: entry.value})
            elif isinstance(to, XHash):
                to.store(key, entry.value)
            elif isinstance(to, MutableMapping):
                to[key] = entry.value
            else:
                removed = entry.value
        return to if to is not None else removed

    def _unlink(self, key: Any, entry: _Entry) -> None:
        if entry.prev == key:
            # Sole entry: reset instead of leaving a one-node ring behind.
            self.clear()
            return
        self._entries[entry.prev].next = entry.next
        self._entries[entry.next].prev = entry.prev
        if self._max_index is not None and index_value(key) == self._max_index:
            self._max_index = None
        if self._last_key == key:
            self._last_key = entry.prev
        del self._entries[key]

    def exists(self, key: Any) -> bool:
        if is_path(key):
            result = traverse(self, key, op="exists")
            return result.container is not None and result.container.exists(result.key)
        return key in self._entries

    def clear(self) -> None:
        self._entries.clear()
        self._last_key = None
        self._max_index = -1

    # ------------------------------------------------------------------
    # Ring walking
    # ------------------------------------------------------------------
    def first_key(self) -> Any:
        if self._last_key is None:
            return None
        return self._entries[self._last_key].next

    def last_key(self) -> Any:
        return self._last_key

    def next_key(self, key: Any) -> Any:
        """Return the key after ``key``; ``None`` for the last or an absent key."""

        if self._last_key is None or key == self._last_key:
            return None
        entry = self._entries.get(key)
        return entry.next if entry is not None else None

    def iter_keys(self) -> Iterator[Any]:
        key = self.first_key()
        while key is not None:
            # Read the successor first so the yielded key may be deleted.
            following = self.next_key(key)
            yield key
            key = following

    def next_index(self) -> int:
        """Return the next auto-index key: one more than the largest non-negative integer key."""

        if self._max_index is None:
            found = [idx for idx in map(index_value, self._entries) if idx is not None]
            self._max_index = max(found, default=-1)
            logger.debug("Recomputed max index over %d keys: %d", len(self._entries), self._max_index)
        return self._max_index + 1

    def is_nonempty(self) -> bool:
        return bool(self._entries)

    def keys(self, *, index_only: bool = False, sort: bool = False) -> List[Any]:
        """Return keys in ring order.

        ``index_only`` keeps integer keys (sign allowed); ``sort`` then orders
        them numerically instead of by position.
        """

        keys = list(self.iter_keys())
        if index_only:
            keys = [key for key in keys if signed_index_value(key) is not None]
            if sort:
                keys.sort(key=signed_index_value)
        return keys

    def values(self, keys: Optional[Sequence[Any]] = None) -> List[Any]:
        return [self.fetch(key) for key in (self.keys() if keys is None else keys)]

    def items(self) -> Iterator[Tuple[Any, Any]]:
        for key in self.iter_keys():
            yield key, self._entries[key].value

    # ------------------------------------------------------------------
    # Array-like operations
    # ------------------------------------------------------------------
    def pop(self) -> Optional[Tuple[Any, Any]]:
        """Remove and return the last ``(key, value)``, or ``None`` when empty."""

        key = self._last_key
        if key is None:
            return None
        return key, self.delete(key)

    def shift(self) -> Optional[Tuple[Any, Any]]:
        """Remove and return the first ``(key, value)``, or ``None`` when empty."""

        key = self.first_key()
        if key is None:
            return None
        return key, self.delete(key)

    def push(self, *items: Any, at_key: Any = None, nested: bool = False) -> "XHash":
        return self.push_all(list(items), at_key=at_key, nested=nested)

    def push_all(self, items: Sequence[Any], *, at_key: Any = None, nested: bool = False) -> "XHash":
        """Append ``items`` (after ``at_key`` when given).

        Mappings are added as key/value pairs, ``Ref`` values are stored as
        they are, and anything else gets the next index.
        """

        if not isinstance(items, (list, tuple)):
            raise BadInputError("push_all requires a list or tuple of items")

        saved_last = None
        if at_key is not None:
            if at_key not in self._entries:
                raise PolicyError(f"push at_key does not exist: {at_key!r}")
            if at_key != self._last_key:
                # Temporarily move the end of the ring.
                saved_last = self._last_key
                self._last_key = at_key

        try:
            for item in items:
                if isinstance(item, Mapping):
                    for key, value in item.items():
                        self.store(key, value, nested=nested)
                elif isinstance(item, Ref):
                    self.store(None, item.value)
                else:
                    self.store(None, item, nested=nested)
        finally:
            if saved_last is not None:
                self._last_key = saved_last
        return self

    def unshift(self, *items: Any, at_key: Any = None, nested: bool = False) -> "XHash":
        return self.unshift_all(list(items), at_key=at_key, nested=nested)

    def unshift_all(self, items: Sequence[Any], *, at_key: Any = None, nested: bool = False) -> "XHash":
        """Insert ``items`` at the beginning (before ``at_key`` when given)."""

        if not isinstance(items, (list, tuple)):
            raise BadInputError("unshift_all requires a list or tuple of items")

        saved_last = self._last_key
        if at_key is not None:
            if at_key not in self._entries:
                raise PolicyError(f"unshift at_key does not exist: {at_key!r}")
            self._last_key = self._entries[at_key].prev

        try:
            self.push_all(items, nested=nested)
        finally:
            if saved_last is not None:
                self._last_key = saved_last
        return self

    def reorder(self, ref_key: Any, *keys: Any) -> "XHash":
        """Move ``keys`` around the reference key, which stays in place.

        Keys listed before the first repeat of ``ref_key`` go immediately
        before it, all others immediately after it; duplicates are ignored.
        ``INDEX_KEYS`` expands to every index key in ascending order.
        """

        expanded: List[Any] = []
        for key in (ref_key, *keys):
            if key is INDEX_KEYS:
                expanded.extend(self.keys(index_only=True, sort=True))
            else:
                expanded.append(key)

        if not expanded or expanded[0] not in self._entries:
            raise PolicyError("reorder reference key does not exist")
        ref_key = expanded[0]

        before: Optional[List[Dict[Any, Any]]] = None
        after: List[Dict[Any, Any]] = []
        for key in expanded[1:]:
            if key != ref_key:
                if key in self._entries:
                    after.append({key: self.delete(key)})
            elif before is None:
                before, after = after, []

        if before:
            self.unshift_all(before, at_key=ref_key)
        if after:
            self.push_all(after, at_key=ref_key)
        logger.debug("Reordered %d keys around %r", len(before or []) + len(after), ref_key)
        return self

    def remap(self, mapping: Mapping[Any, Any]) -> "XHash":
        """Rename keys per ``{old: new}`` without changing order or values."""

        targets = list(mapping.values())
        if len(set(targets)) != len(targets):
            raise BadInputError("remap mapping must be unique")
        if any(target is None for target in targets):
            raise BadInputError("remap targets must not be None")

        active = {old: new for old, new in mapping.items() if old in self._entries}
        for new in active.values():
            if new in self._entries and new not in active:
                raise BadInputError(f"remap target {new!r} collides with an existing key")

        entries: Dict[Any, _Entry] = {}
        for key, entry in self._entries.items():
            entry.prev = active.get(entry.prev, entry.prev)
            entry.next = active.get(entry.next, entry.next)
            entries[active.get(key, key)] = entry
        self._entries = entries
        if self._last_key is not None:
            self._last_key = active.get(self._last_key, self._last_key)
        self._max_index = None
        logger.debug("Remapped %d keys", len(active))
        return self

    def renumber(self, *, start: int = 0, sort: bool = False) -> "XHash":
        """Renumber index keys from ``start`` in ring order (or numeric order with ``sort``)."""

        keys = self.keys(index_only=True, sort=sort)
        if keys:
            self.remap({key: start + pos for pos, key in enumerate(keys)})
        return self

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def as_sequence(self, *, nested: bool = False) -> List[Any]:
        """Export array-like: index-keyed values bare, other entries as ``{key: value}``.

        Mapping or ``Ref`` values at index keys are wrapped in ``Ref`` so that
        pushing the result stores them as values again.
        """

        out: List[Any] = []
        for key, value in self.items():
            expand = nested and isinstance(value, XHash)
            if index_value(key) is not None:
                if expand:
                    out.append(value.as_sequence(nested=True))
                elif isinstance(value, (Mapping, Ref)):
                    out.append(Ref(value))
                else:
                    out.append(value)
            else:
                out.append({key: value.as_sequence(nested=True) if expand else value})
        return out

    def as_pairs(self, *, nested: bool = False) -> List[Dict[Any, Any]]:
        """Export hash-like: every entry as a single-key ``{key: value}`` dict."""

        return [
            {key: value.as_pairs(nested=True) if nested and isinstance(value, XHash) else value}
            for key, value in self.items()
        ]

    # ------------------------------------------------------------------
    # Subscript sugar
    # ------------------------------------------------------------------
    def __getitem__(self, key: Any) -> Any:
        return self.fetch(key)

    def __setitem__(self, key: Any, value: Any) -> None:
        self.store(key, value)

    def __delitem__(self, key: Any) -> None:
        self.delete(key)

    def __contains__(self, key: Any) -> bool:
        return self.exists(key)

    def __iter__(self) -> Iterator[Any]:
        return self.iter_keys()

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return self.is_nonempty()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.as_pairs()!r})"


__all__ = ["XHash"]
