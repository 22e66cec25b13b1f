"""
Shielding Schemes
Hide a numeric value inside an opaque blob, and recover it.

A scheme has exactly two operations, encode and decode, and callers never
look inside a blob. Two schemes ship:

  ReversibleDemoScheme — the "FHE-<base64>" text encoding written by the
                         legacy web front end. It is an encoding, not
                         encryption; keep it only to read legacy data.
  AesGcmScheme         — AES-256-GCM over fixed-size padded plaintext.
                         Equal values produce unrelated blobs of equal
                         length.

Number handling:
  ints are written as decimal digits, floats with repr(). Decoding returns
  an int when the text has no fraction or exponent, otherwise a float.
"""

import base64
import binascii
import math
import os
import re
from abc import ABC, abstractmethod

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from curation.errors import MalformedBlob
from curation.models import Blob
from curation.padding import pad_to_bucket, unpad_from_bucket


# Key derivation parameters
PBKDF2_ITERATIONS = 600_000  # OWASP recommended minimum
SALT_SIZE = 16
NONCE_SIZE = 12  # AES-256-GCM standard
KEY_SIZE = 32    # 256 bits

# Exactly what number_to_text emits: str(int) or repr(float), never signed
_CANONICAL_NUMBER = re.compile(
    r"(?P<integer>0|[1-9][0-9]*)(?P<fraction>\.[0-9]+)?(?P<exponent>e[+-][0-9]+)?"
)


def number_to_text(value) -> str:
    """Canonical text for a shieldable number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected int or float, got {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("Cannot shield a non-finite number")
    if value < 0:
        raise ValueError("Cannot shield a negative number")
    # abs() folds -0.0 into 0.0 so the text stays unsigned
    return str(value) if isinstance(value, int) else repr(abs(value))


def text_to_number(text: str) -> int | float:
    """Parse canonical number text, raising MalformedBlob on anything else."""
    match = _CANONICAL_NUMBER.fullmatch(text or "")
    if match is None:
        raise MalformedBlob("Blob does not contain a number")
    if match.group("fraction") is None and match.group("exponent") is None:
        return int(text)
    value = float(text)
    if not math.isfinite(value):
        raise MalformedBlob("Blob contains a number outside the supported domain")
    return value


def derive_key(passphrase: str, salt: bytes) -> bytes:
    """Derive a 256-bit shielding key from a passphrase using PBKDF2."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(passphrase.encode("utf-8"))


class ShieldingScheme(ABC):
    """Abstract encode/decode pair. decode(encode(v)) == v."""

    name: str = "abstract"

    @abstractmethod
    def encode(self, value: int | float) -> Blob:
        """Shield a non-negative number."""

    @abstractmethod
    def decode(self, blob: Blob) -> int | float:
        """
        Recover the number from a blob this scheme produced.

        Raises:
            MalformedBlob: If the blob was not produced by this scheme.
        """


class ReversibleDemoScheme(ShieldingScheme):
    """
    The legacy "FHE-" + base64(text) encoding.

    Anyone can decode it. It exists so records written by the legacy
    front end stay readable.
    """

    name = "demo"
    PREFIX = "FHE-"

    def encode(self, value: int | float) -> Blob:
        text = number_to_text(value)
        return self.PREFIX + base64.b64encode(text.encode("ascii")).decode("ascii")

    def decode(self, blob: Blob) -> int | float:
        if not isinstance(blob, str) or not blob.startswith(self.PREFIX):
            raise MalformedBlob("Blob is not a demo-scheme encoding")
        try:
            text = base64.b64decode(blob[len(self.PREFIX):], validate=True).decode("ascii")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise MalformedBlob(f"Blob payload is not valid base64: {e}") from e
        return text_to_number(text)


class AesGcmScheme(ShieldingScheme):
    """
    AES-256-GCM shielding.

    The number's text is padded to a fixed bucket and encrypted under a
    fresh random nonce, so blobs are indistinguishable by content or size.
    The blob is "aesgcm1:" followed by base64(nonce || ciphertext).

    Args:
        key: 32-byte AES key. Use from_passphrase() to derive one.
        associated_data: Optional context bound into every blob; decoding
            under different associated data fails.
    """

    name = "aesgcm"
    PREFIX = "aesgcm1:"

    def __init__(self, key: bytes, associated_data: bytes = None):
        if key is None or len(key) != KEY_SIZE:
            raise ValueError(f"AesGcmScheme requires a {KEY_SIZE}-byte key")
        self._aesgcm = AESGCM(key)
        self._aad = associated_data

    @classmethod
    def generate(cls) -> "AesGcmScheme":
        """Scheme with a random key. Blobs are lost with the instance."""
        return cls(AESGCM.generate_key(bit_length=256))

    @classmethod
    def from_passphrase(cls, passphrase: str, salt: bytes) -> "AesGcmScheme":
        if len(salt) < SALT_SIZE:
            raise ValueError(f"Salt must be at least {SALT_SIZE} bytes")
        return cls(derive_key(passphrase, salt))

    def encode(self, value: int | float) -> Blob:
        plaintext = pad_to_bucket(number_to_text(value).encode("ascii"))
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext, self._aad)
        return self.PREFIX + base64.b64encode(nonce + ciphertext).decode("ascii")

    def decode(self, blob: Blob) -> int | float:
        if not isinstance(blob, str) or not blob.startswith(self.PREFIX):
            raise MalformedBlob("Blob is not an AES-GCM shielded value")
        try:
            raw = base64.b64decode(blob[len(self.PREFIX):], validate=True)
        except binascii.Error as e:
            raise MalformedBlob(f"Blob payload is not valid base64: {e}") from e
        if len(raw) <= NONCE_SIZE:
            raise MalformedBlob("Blob is too short")

        nonce, ciphertext = raw[:NONCE_SIZE], raw[NONCE_SIZE:]
        try:
            padded = self._aesgcm.decrypt(nonce, ciphertext, self._aad)
        except InvalidTag:
            # Wrong key, wrong associated data, or tampered bytes
            raise MalformedBlob("Blob failed authentication")

        try:
            text = unpad_from_bucket(padded).decode("ascii")
        except (ValueError, UnicodeDecodeError) as e:
            raise MalformedBlob(f"Blob plaintext is malformed: {e}") from e
        return text_to_number(text)
