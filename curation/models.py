"""
Data model: curated records, submissions and their JSON form.
"""

import json
from dataclasses import dataclass
from enum import Enum

from curation.errors import CorruptRecord, ValidationError

# An opaque string produced by a ShieldingScheme.
Blob = str


class Status(Enum):
    """Lifecycle state of a record."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def terminal(self) -> bool:
        return self is not Status.PENDING


class ShieldedField(Enum):
    """Shielded numeric fields that can be disclosed."""
    RATING = "rating"
    USAGE = "usage"


_REQUIRED_FIELDS = ("name", "description", "rating", "usage", "category", "submitter", "timestamp")


@dataclass(frozen=True)
class Submission:
    """Input for a new record, with the numeric fields still in cleartext."""
    name: str
    description: str
    category: str
    rating: int | float
    usage: int | float


@dataclass(frozen=True)
class Record:
    """
    One curated submission.

    Public metadata is stored as-is; rating and usage only ever exist here
    as shielded blobs. The id is not part of the stored document, it is
    carried by the storage key.
    """
    id: str
    name: str
    description: str
    category: str
    shielded_rating: Blob
    shielded_usage: Blob
    submitter: str
    created_at: int
    status: Status = Status.PENDING

    def shielded(self, field: ShieldedField | str) -> Blob:
        """
        The blob for one named field.

        Raises:
            ValidationError: If `field` names no shielded field.
        """
        try:
            field = ShieldedField(field)
        except ValueError:
            raise ValidationError([f"unknown shielded field {field!r}"])
        if field is ShieldedField.RATING:
            return self.shielded_rating
        if field is ShieldedField.USAGE:
            return self.shielded_usage
        raise ValidationError([f"unknown shielded field {field!r}"])

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "rating": self.shielded_rating,
            "usage": self.shielded_usage,
            "category": self.category,
            "submitter": self.submitter,
            "timestamp": self.created_at,
            "status": self.status.value,
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict()).encode("utf-8")

    @classmethod
    def from_dict(cls, record_id: str, data: dict) -> "Record":
        if not isinstance(data, dict):
            raise CorruptRecord(f"Record {record_id} is not a JSON object")

        missing = [name for name in _REQUIRED_FIELDS if name not in data]
        if missing:
            raise CorruptRecord(f"Record {record_id} is missing {', '.join(missing)}")

        timestamp = data["timestamp"]
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise CorruptRecord(f"Record {record_id} has a non-integer timestamp")

        # Documents written before review existed carry no status
        try:
            status = Status(data.get("status") or Status.PENDING.value)
        except ValueError:
            raise CorruptRecord(f"Record {record_id} has unknown status {data['status']!r}")

        for name in ("name", "description", "rating", "usage", "category", "submitter"):
            if not isinstance(data[name], str):
                raise CorruptRecord(f"Record {record_id} field {name} is not a string")

        return cls(
            id=record_id,
            name=data["name"],
            description=data["description"],
            category=data["category"],
            shielded_rating=data["rating"],
            shielded_usage=data["usage"],
            submitter=data["submitter"],
            created_at=timestamp,
            status=status,
        )

    @classmethod
    def from_json(cls, record_id: str, raw: bytes) -> "Record":
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise CorruptRecord(f"Record {record_id} is not valid JSON: {e}") from e
        return cls.from_dict(record_id, data)
