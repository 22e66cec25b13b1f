"""
Base class for all key/value store backends.
Every place records can live implements this interface.
"""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """
    Abstract key/value store holding UTF-8 JSON documents under ASCII keys.

    Backends that can perform a conditional write advertise it through
    `supports_compare_and_set`. Without it, read-modify-write sequences
    against the store are not atomic.
    """

    supports_compare_and_set = False

    @property
    @abstractmethod
    def address(self) -> str:
        """Stable identity of this store (contract address, path, ...)."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the store is reachable and ready."""

    @abstractmethod
    def get_data(self, key: str) -> bytes:
        """
        Read the value under a key.

        Returns:
            The stored bytes, or b"" if the key was never written.
        """

    @abstractmethod
    def set_data(self, key: str, value: bytes) -> None:
        """Write (or overwrite) the value under a key."""

    def compare_and_set(self, key: str, expected: bytes, value: bytes) -> bool:
        """
        Write `value` only if the key currently holds `expected`.

        Optional: only backends that set `supports_compare_and_set = True`
        override this. Callers must check that flag first.

        Returns:
            True if the write happened, False if the current value differed.

        Raises:
            NotImplementedError: On backends without a conditional write.
        """
        raise NotImplementedError(f"{self.__class__.__name__} has no conditional write")

    @abstractmethod
    def get_info(self) -> dict:
        """Get metadata about this store (backend, address, status)."""


def check_key(key: str) -> str:
    """Keys are opaque, non-empty ASCII strings."""
    if not isinstance(key, str) or not key or not key.isascii():
        raise ValueError(f"Store keys must be non-empty ASCII strings, got {key!r}")
    return key
