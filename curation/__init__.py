"""
Curation — Shielded Tool Review
Submission, review and signature-gated disclosure for community-curated records.

Records carry public metadata (name, description, category) and two
shielded numbers (rating, usage). Three layers work together:
1. Shielding — numbers are stored only as opaque blobs (AES-256-GCM by default)
2. Lifecycle — pending records are approved or rejected exactly once
3. Disclosure — a blob is decoded only after the viewer signs a fresh challenge

Usage:
    from curation import CurationWorkflow, MemoryStore, AesGcmScheme, Submission
    workflow = CurationWorkflow(MemoryStore(), AesGcmScheme.generate())
    record_id = workflow.submit(Submission("Quizlet", "Flashcards", "Assessment", 4, 120), actor)
"""

from curation.adapter import RecordStoreAdapter
from curation.config import CurationConfig, configure_logging
from curation.disclosure import DisclosureProtocol, SessionParams, build_challenge
from curation.errors import (
    CurationError,
    CorruptIndex,
    CorruptRecord,
    DisclosureDenied,
    InvalidTransition,
    MalformedBlob,
    NotFound,
    StoreConflict,
    StoreUnavailable,
    Unauthorized,
    UserRejected,
    ValidationError,
)
from curation.identity import Identity, LocalAccountIdentity, recover_signer
from curation.lifecycle import Event, allow_list, submitter_only, transition
from curation.models import Record, ShieldedField, Status, Submission
from curation.shielding import AesGcmScheme, ReversibleDemoScheme, ShieldingScheme
from curation.stores import EthereumStore, FileStore, KeyValueStore, MemoryStore
from curation.workflow import CurationWorkflow

__version__ = "0.1.0"
__all__ = [
    "CurationWorkflow",
    "CurationConfig",
    "configure_logging",
    "RecordStoreAdapter",
    "DisclosureProtocol",
    "SessionParams",
    "build_challenge",
    "Identity",
    "LocalAccountIdentity",
    "recover_signer",
    "Event",
    "transition",
    "submitter_only",
    "allow_list",
    "Record",
    "Submission",
    "ShieldedField",
    "Status",
    "ShieldingScheme",
    "AesGcmScheme",
    "ReversibleDemoScheme",
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "EthereumStore",
    "CurationError",
    "CorruptIndex",
    "CorruptRecord",
    "DisclosureDenied",
    "InvalidTransition",
    "MalformedBlob",
    "NotFound",
    "StoreConflict",
    "StoreUnavailable",
    "Unauthorized",
    "UserRejected",
    "ValidationError",
]
