"""
Workflow Orchestrator
The operations a curation front end calls: list, search, submit, disclose,
approve and reject.

Flow for submitting a tool:
1. Validate every field and read the index strictly (nothing is written
   if anything is wrong)
2. Shield rating and usage
3. Allocate a fresh id
4. Write the record
5. Append the id to the index

Flow for listing:
1. Read the index
2. Read each record, skipping the ones that cannot be read
3. Sort newest first

Per-request context (acting address, identity, disclosure session) is
passed into every call; the workflow holds no user state of its own.
"""

import logging
import math
import secrets
import string
import time

from curation.adapter import RecordStoreAdapter
from curation.config import CurationConfig
from curation.disclosure import DisclosureProtocol, SessionParams
from curation.errors import CurationError, StoreConflict, Unauthorized, ValidationError
from curation.identity import Identity
from curation.lifecycle import Event, Policy, submitter_only, transition
from curation.models import Record, ShieldedField, Status, Submission
from curation.shielding import ShieldingScheme
from curation.stores.base import KeyValueStore

logger = logging.getLogger(__name__)


ALL_CATEGORIES = "All"
_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_ATTEMPTS = 8


class CurationWorkflow:
    """
    Composes the store adapter, shielding scheme, disclosure protocol and
    state machine.

    Args:
        store: Backend the records live in.
        scheme: Shielding scheme for rating and usage.
        config: Keys, ranges and categories. Defaults to CurationConfig().
        policy: Who may approve or reject a record.
        disclosure: Disclosure protocol; built from `scheme` if omitted.
        clock: Returns the current time in seconds.
        atomic_append: Passed to RecordStoreAdapter.
    """

    def __init__(
        self,
        store: KeyValueStore,
        scheme: ShieldingScheme,
        config: CurationConfig = None,
        policy: Policy = submitter_only,
        disclosure: DisclosureProtocol = None,
        clock=time.time,
        atomic_append: bool = None,
    ):
        self.config = config or CurationConfig()
        self.adapter = RecordStoreAdapter(store, self.config, atomic_append=atomic_append)
        self.scheme = scheme
        self.policy = policy
        self.clock = clock
        self.disclosure = disclosure or DisclosureProtocol(
            scheme, verify_signatures=self.config.verify_signatures, clock=clock
        )

    @property
    def store(self) -> KeyValueStore:
        return self.adapter.store

    def new_session(self) -> SessionParams:
        """Disclosure session parameters for a viewer connecting now."""
        return SessionParams.create(
            store_address=self.store.address,
            chain_id=self.config.chain_id,
            duration_days=self.config.disclosure_window_days,
            now=int(self.clock()),
        )

    # ── Reading ──

    def list_records(self) -> list[Record]:
        """Every readable record, newest first."""
        records = []
        for record_id, result in self.adapter.iter_records():
            if isinstance(result, CurationError):
                logger.warning("Skipping record %s: %s: %s", record_id, result.kind, result.message)
                continue
            records.append(result)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records

    def search(self, term: str = "", category: str = ALL_CATEGORIES) -> list[Record]:
        """Records whose name or description contains `term`, in `category`."""
        needle = term.lower()
        return [
            r for r in self.list_records()
            if (needle in r.name.lower() or needle in r.description.lower())
            and (category == ALL_CATEGORIES or r.category == category)
        ]

    def stats(self) -> dict:
        records = self.list_records()
        counts = {status: 0 for status in Status}
        for record in records:
            counts[record.status] += 1
        return {
            "total": len(records),
            "approved": counts[Status.APPROVED],
            "pending": counts[Status.PENDING],
            "rejected": counts[Status.REJECTED],
            "categories": len(self.config.categories),
        }

    def get_record(self, record_id: str) -> Record:
        """Direct read. Raises NotFound or CorruptRecord."""
        return self.adapter.read_record(record_id)

    # ── Submitting ──

    def validate(self, submission: Submission) -> list[str]:
        """Every problem with a submission; empty when it is acceptable."""
        problems = []
        for name in ("name", "description", "category"):
            value = getattr(submission, name)
            if not isinstance(value, str) or not value.strip():
                problems.append(f"{name} is required")

        if (
            isinstance(submission.category, str)
            and submission.category.strip()
            and submission.category not in self.config.categories
        ):
            problems.append(
                f"category must be one of {', '.join(self.config.categories)}"
            )

        cfg = self.config
        if not _is_number(submission.rating):
            problems.append("rating must be a number")
        elif not cfg.min_rating <= submission.rating <= cfg.max_rating:
            problems.append(f"rating must be between {cfg.min_rating} and {cfg.max_rating}")

        if not _is_number(submission.usage):
            problems.append("usage must be a number")
        elif not 0 <= submission.usage <= cfg.max_usage:
            problems.append(f"usage must be between 0 and {cfg.max_usage}")

        return problems

    def submit(self, submission: Submission, actor: str) -> str:
        """
        Shield and store a new record in pending state.

        Returns:
            The new record id.

        Raises:
            Unauthorized: No acting address.
            ValidationError: Bad input; nothing was written.
            CorruptIndex: The index cannot be appended to; nothing was written.
        """
        if not actor:
            raise Unauthorized("Connect an identity before submitting")

        problems = self.validate(submission)
        if problems:
            raise ValidationError(problems)

        # A corrupt index would refuse the append below; fail before writing
        self.adapter.read_index(strict=True)

        record = Record(
            id=self._allocate_id(),
            name=submission.name.strip(),
            description=submission.description.strip(),
            category=submission.category,
            shielded_rating=self.scheme.encode(submission.rating),
            shielded_usage=self.scheme.encode(submission.usage),
            submitter=actor,
            created_at=int(self.clock()),
            status=Status.PENDING,
        )

        self.adapter.write_record(record)
        try:
            self.adapter.append_to_index(record.id)
        except CurationError as e:
            logger.error(
                "Record %s is stored but missing from the index: %s: %s",
                record.id, e.kind, e.message,
            )
            raise
        logger.info("Submitted record %s (%s) by %s", record.id, record.category, actor)
        return record.id

    def _allocate_id(self) -> str:
        """tool-<millis>-<4 base36 chars>, re-drawn if already taken."""
        for _ in range(_ID_ATTEMPTS):
            suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(4))
            record_id = f"{self.config.id_prefix}-{int(self.clock() * 1000)}-{suffix}"
            if not self.adapter.record_exists(record_id):
                return record_id
        raise StoreConflict("Could not allocate an unused record id")

    # ── Disclosure ──

    def request_disclosure(
        self,
        record_id: str,
        field: ShieldedField,
        identity: Identity,
        session: SessionParams,
    ) -> int | float:
        """Reveal one shielded field of a record to a signing requester."""
        record = self.adapter.read_record(record_id)
        return self.disclosure.disclose(record.shielded(field), identity, session)

    # ── Review ──

    def approve(self, record_id: str, actor: str) -> Record:
        return self._apply(record_id, Event.APPROVE, actor)

    def reject(self, record_id: str, actor: str) -> Record:
        return self._apply(record_id, Event.REJECT, actor)

    def _apply(self, record_id: str, event: Event, actor: str) -> Record:
        record = self.adapter.read_record(record_id)
        updated = transition(record, event, actor, self.policy)
        self.adapter.write_record(updated)
        return updated


def _is_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
