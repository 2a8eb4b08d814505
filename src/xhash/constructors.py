"""Shortcuts that build an XHash and push elements into it in one call.

The ``r`` variants take a single list or tuple of elements, the others take
the elements as positional arguments; the ``n`` variants convert nested
mappings and sequences into nested XHash containers.

    xh("hello", {"root": xh({"leaf": "value"})}, {"list": xh(1, 2, 3)})
    xhn("hello", {"root": {"leaf": "value"}}, {"list": [1, 2, 3]})
"""

from __future__ import annotations

from typing import Any, Sequence

from .core.xhash import XHash


def xh(*items: Any) -> XHash:
    return XHash().push_all(list(items))


def xhn(*items: Any) -> XHash:
    return XHash().push_all(list(items), nested=True)


def xhr(items: Sequence[Any], *, nested: bool = False) -> XHash:
    return XHash().push_all(items, nested=nested)


def xhrn(items: Sequence[Any]) -> XHash:
    return XHash().push_all(items, nested=True)


xhash = xh
xhashref = xhr


__all__ = ["xh", "xhn", "xhr", "xhrn", "xhash", "xhashref"]
