"""Ordered hashes with automatic index keys and nested key paths."""

from . import analysis, contracts, core, io
from .constructors import xh, xhash, xhashref, xhn, xhr, xhrn
from .contracts.error import BadInputError, PolicyError, XHashError
from .core import AS_XHASH, INDEX_KEYS, Ref, XHash

__version__ = "0.1.0"

__all__ = [
    "AS_XHASH",
    "INDEX_KEYS",
    "BadInputError",
    "PolicyError",
    "Ref",
    "XHash",
    "XHashError",
    "analysis",
    "contracts",
    "core",
    "io",
    "xh",
    "xhash",
    "xhashref",
    "xhn",
    "xhr",
    "xhrn",
]
