"""
Key/value store backends.
Each backend implements the store capability records are kept in.
"""

from curation.stores.base import KeyValueStore
from curation.stores.memory import MemoryStore
from curation.stores.filesystem import FileStore
from curation.stores.ethereum import EthereumStore

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "EthereumStore",
]
