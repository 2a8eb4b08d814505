from .keys import AS_XHASH, INDEX_KEYS, Ref, index_value, is_path, signed_index_value
from .paths import PathResult, traverse
from .xhash import XHash

__all__ = [
    "AS_XHASH",
    "INDEX_KEYS",
    "PathResult",
    "Ref",
    "XHash",
    "index_value",
    "is_path",
    "signed_index_value",
    "traverse",
]
