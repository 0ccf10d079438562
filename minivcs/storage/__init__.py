"""
On-disk storage for blobs and version records.
"""

from .objects import (
    ObjectStore,
    atomic_write,
    decode_lines,
    hash_bytes,
    hash_file,
    split_lines,
)

from .versions import VersionStore

__all__ = [
    "ObjectStore",
    "VersionStore",
    "atomic_write",
    "decode_lines",
    "hash_bytes",
    "hash_file",
    "split_lines",
]
