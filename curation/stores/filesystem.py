"""
File-backed store.
One file per key under a directory we control. No blockchain needed.

Keys are hex-encoded into file names so any ASCII key maps to a safe,
reversible name. Writes go through a temporary file and an atomic rename,
so a reader never sees a half-written value. There is no conditional
write: concurrent read-modify-write sequences can lose updates.
"""

import json
import os
import secrets
import time
from pathlib import Path

from curation.stores.base import KeyValueStore, check_key


class FileStore(KeyValueStore):
    """
    Stores each value as `<hex(key)>.val` in `storage_dir`.

    Args:
        storage_dir: Directory holding the values. Created if missing.
    """

    def __init__(self, storage_dir: str | Path):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        if not self._meta_file.exists():
            meta = {"backend": "file", "created": int(time.time())}
            self._meta_file.write_text(json.dumps(meta, indent=2))

    @property
    def _meta_file(self) -> Path:
        return self.storage_dir / "store.meta.json"

    def _path(self, key: str) -> Path:
        return self.storage_dir / f"{check_key(key).encode('ascii').hex()}.val"

    @property
    def address(self) -> str:
        return self.storage_dir.resolve().as_uri()

    def is_available(self) -> bool:
        """Available while the storage directory exists."""
        return self.storage_dir.is_dir()

    def get_data(self, key: str) -> bytes:
        path = self._path(key)
        if not path.exists():
            return b""
        return path.read_bytes()

    def set_data(self, key: str, value: bytes) -> None:
        path = self._path(key)
        tmp = path.with_suffix(f".tmp-{os.getpid()}-{secrets.token_hex(4)}")
        tmp.write_bytes(bytes(value))
        os.replace(tmp, path)

    def keys(self) -> list[str]:
        return sorted(
            bytes.fromhex(p.stem).decode("ascii")
            for p in self.storage_dir.glob("*.val")
        )

    def get_info(self) -> dict:
        info = {
            "backend": "file",
            "address": self.address,
            "storage_dir": str(self.storage_dir),
            "available": self.is_available(),
        }

        if self._meta_file.exists():
            meta = json.loads(self._meta_file.read_text())
            info["created"] = meta.get("created")

        return info
