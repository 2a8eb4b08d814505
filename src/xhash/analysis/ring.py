"""Invariant checks for XHash rings and nested trees."""

from __future__ import annotations

from typing import Any, List, Set, Tuple

from xhash.core.keys import index_value
from xhash.core.xhash import XHash


def verify_ring(xh: XHash, verbose: bool = False) -> Tuple[bool, List[str]]:
    """Check link integrity, the emptiness rule and the index cache of one container."""

    msgs: List[str] = []
    entries = xh._entries  # pylint: disable=protected-access
    last = xh._last_key  # pylint: disable=protected-access
    cached = xh._max_index  # pylint: disable=protected-access

    if (last is None) != (not entries):
        msgs.append(f"Emptiness violated: last_key={last!r}, entries={len(entries)}")
        return False, msgs
    if last is None:
        ok = cached == -1 or cached is None
        if not ok:
            msgs.append(f"Empty container caches max index {cached!r}")
        if verbose:
            msgs.append("Size=0")
        return ok, msgs
    if last not in entries:
        msgs.append(f"last_key {last!r} is not an entry")
        return False, msgs

    ok = True
    seen: Set[Any] = set()
    first = entries[last].next
    key = first
    while True:
        if key in seen:
            msgs.append(f"Ring revisits {key!r} before returning to the first key")
            ok = False
            break
        entry = entries.get(key)
        if entry is None:
            msgs.append(f"Ring links to missing key {key!r}")
            ok = False
            break
        seen.add(key)
        follower = entries.get(entry.next)
        if follower is None or follower.prev != key:
            msgs.append(f"Links of {key!r} and {entry.next!r} are not mutual inverses")
            ok = False
        key = entry.next
        if key == first:
            break

    if ok and len(seen) != len(entries):
        msgs.append(f"Ring visits {len(seen)} of {len(entries)} keys")
        ok = False

    indices = [idx for idx in map(index_value, entries) if idx is not None]
    actual = max(indices, default=-1)
    if cached is not None and cached != actual:
        msgs.append(f"Cached max index {cached} != actual {actual}")
        ok = False

    if verbose:
        msgs.append(
            f"Size={len(entries)}, First={first!r}, Last={last!r}, "
            f"MaxIndex={'unknown' if cached is None else cached}, NextIndex={actual + 1}"
        )
    return ok, msgs


def verify_tree(xh: XHash, verbose: bool = False) -> Tuple[bool, List[str]]:
    """Run :func:`verify_ring` on ``xh`` and every nested container, prefixing paths."""

    ok, msgs = verify_ring(xh, verbose)
    for key, value in xh.items():
        if isinstance(value, XHash):
            sub_ok, sub_msgs = verify_tree(value, verbose)
            ok = ok and sub_ok
            msgs += [f"[{key!r}] {msg}" for msg in sub_msgs]
    return ok, msgs


__all__ = ["verify_ring", "verify_tree"]
