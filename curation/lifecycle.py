"""
Curation State Machine
Owns record status and who may change it.

  pending --approve--> approved
  pending --reject---> rejected

approved and rejected are terminal. A transition only ever changes the
status; shielded fields, submitter and timestamps are carried over as-is.

Who may transition is a policy: a plain callable (record, actor) -> bool.
The default lets the submitter review their own record. Swap in
allow_list() or any other callable for a moderator model.
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Callable, Iterable

from curation.errors import InvalidTransition, Unauthorized
from curation.identity import same_address
from curation.models import Record, Status

logger = logging.getLogger(__name__)

Policy = Callable[[Record, str], bool]


class Event(Enum):
    APPROVE = "approve"
    REJECT = "reject"


TRANSITIONS = {
    (Status.PENDING, Event.APPROVE): Status.APPROVED,
    (Status.PENDING, Event.REJECT): Status.REJECTED,
}


def submitter_only(record: Record, actor: str) -> bool:
    """Only the original submitter may review the record."""
    return same_address(record.submitter, actor)


def allow_list(addresses: Iterable[str]) -> Policy:
    """Policy admitting a fixed set of reviewer addresses."""
    allowed = {a.lower() for a in addresses}

    def policy(record: Record, actor: str) -> bool:
        return bool(actor) and actor.lower() in allowed

    return policy


def transition(record: Record, event: Event, actor: str, policy: Policy = submitter_only) -> Record:
    """
    Apply an event to a record.

    Returns:
        A new Record differing from the input only in status.

    Raises:
        InvalidTransition: The record is not pending.
        Unauthorized: The policy refuses the actor.
    """
    target = TRANSITIONS.get((record.status, event))
    if target is None:
        raise InvalidTransition(
            f"Cannot {event.value} record {record.id}: it is already {record.status.value}"
        )

    if not policy(record, actor):
        raise Unauthorized(f"{actor or 'anonymous'} may not {event.value} record {record.id}")

    logger.info("Record %s %s -> %s by %s", record.id, record.status.value, target.value, actor)
    return replace(record, status=target)
