"""
Disclosure Protocol
Reveal a shielded value only after the requester signs a fresh challenge.

Protocol:
  1. The viewer's session fixes the challenge parameters: public key
     material, store address, chain id, window start and window length.
  2. The window must still be open; otherwise no signature is requested.
  3. The requester signs the canonical challenge text. A decline or any
     signing failure ends the disclosure.
  4. The signature is checked against the requester's address.
  5. Only then is the blob decoded. The value goes back to the caller
     and is never cached or written to the store; the next disclosure
     asks for a new signature.
"""

import logging
import secrets
import time
from dataclasses import dataclass

from curation.errors import DisclosureDenied
from curation.identity import Identity, recover_signer, same_address
from curation.models import Blob
from curation.shielding import ShieldingScheme

logger = logging.getLogger(__name__)


SECONDS_PER_DAY = 86400
PUBLIC_KEY_HEX_CHARS = 2000


def generate_public_key() -> str:
    """Per-session public key material: 0x followed by 2000 hex characters."""
    return "0x" + secrets.token_hex(PUBLIC_KEY_HEX_CHARS // 2)


@dataclass(frozen=True)
class SessionParams:
    """Everything the challenge binds. One instance per viewer session."""
    public_key: str
    store_address: str
    chain_id: int
    start_timestamp: int
    duration_days: int = 30

    @classmethod
    def create(cls, store_address: str, chain_id: int, duration_days: int = 30, now: int = None) -> "SessionParams":
        return cls(
            public_key=generate_public_key(),
            store_address=store_address,
            chain_id=chain_id,
            start_timestamp=int(time.time()) if now is None else int(now),
            duration_days=duration_days,
        )

    @property
    def expires_at(self) -> int:
        return self.start_timestamp + self.duration_days * SECONDS_PER_DAY

    def is_open(self, now: float) -> bool:
        return self.start_timestamp <= now <= self.expires_at


def build_challenge(params: SessionParams) -> str:
    """
    Canonical challenge text.

    Byte-for-byte stable for the same parameters; wallets display it and
    verifiers rebuild it.
    """
    return (
        f"publickey:{params.public_key}\n"
        f"contractAddresses:{params.store_address}\n"
        f"contractsChainId:{params.chain_id}\n"
        f"startTimestamp:{params.start_timestamp}\n"
        f"durationDays:{params.duration_days}"
    )


class DisclosureProtocol:
    """
    Signature gate in front of ShieldingScheme.decode.

    Args:
        scheme: The scheme the blobs were produced with.
        verify_signatures: Check the signature recovers to the requester.
            Turning this off reduces the signature to a consent prompt.
        clock: Returns the current time in seconds.
    """

    def __init__(self, scheme: ShieldingScheme, verify_signatures: bool = True, clock=time.time):
        self.scheme = scheme
        self.verify_signatures = verify_signatures
        self.clock = clock
        if not verify_signatures:
            logger.warning("Signature verification disabled: disclosure relies on consent only")

    def disclose(self, blob: Blob, identity: Identity, params: SessionParams) -> int | float:
        """
        Run the protocol for one blob.

        Raises:
            DisclosureDenied: Window closed, no address, signing declined or
                failed, or the signature does not match the requester.
            MalformedBlob: The blob is not one this scheme produced.
        """
        now = self.clock()
        if not params.is_open(now):
            raise self._deny(f"Challenge window {params.start_timestamp}..{params.expires_at} is not open")

        address = identity.current_address()
        if not address:
            raise self._deny("No identity connected")

        message = build_challenge(params)
        try:
            signature = identity.sign(message)
        except Exception as e:
            raise self._deny(f"Signature request failed: {e}") from e

        if self.verify_signatures:
            try:
                signer = recover_signer(message, signature)
            except Exception as e:
                raise self._deny(f"Signature is not valid: {e}") from e
            if not same_address(signer, address):
                raise self._deny(f"Signature was made by {signer}, not {address}")

        value = self.scheme.decode(blob)
        logger.info("Disclosed a %s value to %s", self.scheme.name, address)
        return value

    @staticmethod
    def _deny(reason: str) -> DisclosureDenied:
        logger.warning("Disclosure denied: %s", reason)
        return DisclosureDenied(reason)
