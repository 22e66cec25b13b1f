"""
In-process store.
Keeps every value in a dict. Useful for tests and single-process tools.
"""

import threading

from curation.stores.base import KeyValueStore, check_key


class MemoryStore(KeyValueStore):
    """
    Dict-backed store with an atomic compare-and-set.

    Args:
        address: Identity reported to the disclosure challenge.
        available: Initial availability flag.
    """

    supports_compare_and_set = True

    def __init__(self, address: str = "memory://local", available: bool = True):
        self._address = address
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()
        self.available = available
        self.writes = 0

    @property
    def address(self) -> str:
        return self._address

    def is_available(self) -> bool:
        return self.available

    def get_data(self, key: str) -> bytes:
        check_key(key)
        with self._lock:
            return self._data.get(key, b"")

    def set_data(self, key: str, value: bytes) -> None:
        check_key(key)
        with self._lock:
            self._data[key] = bytes(value)
            self.writes += 1

    def compare_and_set(self, key: str, expected: bytes, value: bytes) -> bool:
        check_key(key)
        with self._lock:
            if self._data.get(key, b"") != expected:
                return False
            self._data[key] = bytes(value)
            self.writes += 1
            return True

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)

    def get_info(self) -> dict:
        return {
            "backend": "memory",
            "address": self._address,
            "available": self.available,
            "keys": len(self._data),
        }
