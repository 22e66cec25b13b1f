"""
Record Store Adapter
Typed access to whole records on top of a raw key/value store.

Layout in the store:
  tool_keys    — JSON array of every record id (the index)
  tool_<id>    — JSON document for one record

The store offers no native list append, so adding an id to the index is a
read-modify-write. When the backend supports compare-and-set the adapter
retries the write until it lands on the value it read. Otherwise two
writers that read the same index can each write back a list missing the
other's id; the record survives in the store but no longer appears in
the index.
"""

import json
import logging
from typing import Iterator

from curation.config import CurationConfig
from curation.errors import CorruptIndex, CurationError, NotFound, StoreConflict, StoreUnavailable
from curation.models import Record
from curation.stores.base import KeyValueStore

logger = logging.getLogger(__name__)


def parse_index(raw: bytes) -> list[str]:
    """
    Decode the index document.

    Returns:
        Ids in stored order, duplicates dropped.

    Raises:
        CorruptIndex: If the bytes are not a JSON array of strings.
    """
    if not raw:
        return []
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CorruptIndex(f"Index is not UTF-8: {e}") from e
    if not text.strip():
        return []
    try:
        ids = json.loads(text)
    except ValueError as e:
        raise CorruptIndex(f"Index is not valid JSON: {e}") from e
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise CorruptIndex("Index is not a JSON array of strings")
    return list(dict.fromkeys(ids))


def dump_index(ids: list[str]) -> bytes:
    return json.dumps(ids).encode("utf-8")


class RecordStoreAdapter:
    """
    Reads and writes Records and the id index.

    Args:
        store: The backing key/value store.
        config: Key names and retry limits.
        atomic_append: Use compare-and-set for index appends. None picks
            it automatically when the store supports it; False forces the
            plain read-then-write.
    """

    def __init__(self, store: KeyValueStore, config: CurationConfig = None, atomic_append: bool = None):
        self.store = store
        self.config = config or CurationConfig()

        if atomic_append is None:
            atomic_append = store.supports_compare_and_set
        elif atomic_append and not store.supports_compare_and_set:
            raise ValueError(f"{store.__class__.__name__} does not support compare-and-set")
        self.atomic_append = atomic_append

        if not self.atomic_append:
            logger.warning(
                "Index appends on %s are not atomic: concurrent submissions can drop ids from %s",
                store.address, self.config.index_key,
            )

    def _require_available(self):
        if not self.store.is_available():
            raise StoreUnavailable(f"Store {self.store.address} is not available")

    def read_index(self, strict: bool = False) -> list[str]:
        """
        Read every record id known to the store.

        A corrupt index is logged and read as empty, unless `strict`, in
        which case CorruptIndex is raised.
        """
        self._require_available()
        raw = self.store.get_data(self.config.index_key)
        try:
            return parse_index(raw)
        except CorruptIndex as e:
            if strict:
                raise
            logger.warning("%s: %s (%d bytes left untouched)", e.kind, e.message, len(raw))
            return []

    def read_record(self, record_id: str) -> Record:
        """Raises NotFound or CorruptRecord."""
        self._require_available()
        raw = self.store.get_data(self.config.record_key(record_id))
        if not raw:
            raise NotFound(f"No record with id {record_id}")
        return Record.from_json(record_id, raw)

    def record_exists(self, record_id: str) -> bool:
        self._require_available()
        return bool(self.store.get_data(self.config.record_key(record_id)))

    def write_record(self, record: Record) -> None:
        """Upsert: the stored document is replaced wholesale."""
        self._require_available()
        self.store.set_data(self.config.record_key(record.id), record.to_json())

    def append_to_index(self, record_id: str) -> list[str]:
        """
        Add an id to the index.

        The index is read strictly: a corrupt index is reported instead of
        being overwritten with a one-element list.

        Returns:
            The index as written.
        """
        self._require_available()
        key = self.config.index_key

        if not self.atomic_append:
            ids = parse_index(self.store.get_data(key))
            if record_id in ids:
                return ids
            ids.append(record_id)
            self.store.set_data(key, dump_index(ids))
            return ids

        for attempt in range(1, self.config.cas_retries + 1):
            current = self.store.get_data(key)
            ids = parse_index(current)
            if record_id in ids:
                return ids
            ids.append(record_id)
            if self.store.compare_and_set(key, current, dump_index(ids)):
                return ids
            logger.info("Index changed under append of %s, retry %d", record_id, attempt)

        raise StoreConflict(
            f"Could not append {record_id} to the index after {self.config.cas_retries} attempts"
        )

    def iter_records(self) -> Iterator[tuple[str, Record | CurationError]]:
        """
        Yield (id, record) for every indexed id.

        A record that cannot be read is yielded as its error instead, so
        one bad entry does not stop the walk.
        """
        for record_id in self.read_index():
            try:
                yield record_id, self.read_record(record_id)
            except StoreUnavailable:
                raise
            except CurationError as e:
                yield record_id, e
