"""
Error taxonomy for the curation workflow.

Every failure a caller can see is a CurationError subclass with a stable
`kind` and a human-readable message. Backend exceptions are wrapped at the
boundary that produced them.
"""


class CurationError(Exception):
    """Base class for all curation failures."""

    kind = "curation_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class StoreUnavailable(CurationError):
    """The backing store reports it is not ready. Retry later."""
    kind = "store_unavailable"


class StoreConflict(CurationError):
    """A conditional write kept losing to concurrent writers."""
    kind = "store_conflict"


class NotFound(CurationError):
    kind = "not_found"


class CorruptIndex(CurationError):
    kind = "corrupt_index"


class CorruptRecord(CurationError):
    kind = "corrupt_record"


class ValidationError(CurationError):
    """
    Submission input was rejected before anything was written.

    Args:
        problems: One entry per offending field, e.g. "rating must be between 1 and 5".
    """

    kind = "validation_error"

    def __init__(self, problems: list[str]):
        super().__init__("Invalid submission: " + "; ".join(problems))
        self.problems = list(problems)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["problems"] = self.problems
        return data


class MalformedBlob(CurationError):
    kind = "malformed_blob"


class DisclosureDenied(CurationError):
    kind = "disclosure_denied"


class InvalidTransition(CurationError):
    kind = "invalid_transition"


class Unauthorized(CurationError):
    kind = "unauthorized"


class UserRejected(CurationError):
    """The identity holder declined to sign."""
    kind = "user_rejected"
