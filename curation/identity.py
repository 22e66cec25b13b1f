"""
Identity capability.
Something that has an address and can sign text messages for it.

Signatures follow EIP-191 personal_sign, the format wallets produce for
signMessage, so a signature collected from a browser wallet verifies the
same way as one produced by LocalAccountIdentity.
"""

from abc import ABC, abstractmethod

from eth_account import Account
from eth_account.messages import encode_defunct

from curation.errors import UserRejected


class Identity(ABC):
    """An address holder able to sign messages."""

    @abstractmethod
    def current_address(self) -> str | None:
        """The connected address, or None when nothing is connected."""

    @abstractmethod
    def sign(self, message: str) -> bytes:
        """
        Sign a text message.

        Raises:
            UserRejected: If the holder declines to sign.
        """


class LocalAccountIdentity(Identity):
    """
    Identity backed by a private key held in process.

    Args:
        private_key: Hex private key. A fresh account is created if omitted.
        approve: Optional callable(message) -> bool consulted before every
            signature; returning False declines, like a wallet prompt.
    """

    def __init__(self, private_key: str = None, approve=None):
        if private_key:
            self._account = Account.from_key(private_key)
        else:
            self._account = Account.create()
        self._approve = approve
        self.signatures_issued = 0

    def current_address(self) -> str | None:
        return self._account.address

    def sign(self, message: str) -> bytes:
        if self._approve is not None and not self._approve(message):
            raise UserRejected("User rejected the signature request")
        signed = self._account.sign_message(encode_defunct(text=message))
        self.signatures_issued += 1
        return bytes(signed.signature)


def recover_signer(message: str, signature: bytes) -> str:
    """Recover the address that produced an EIP-191 signature over `message`."""
    return Account.recover_message(encode_defunct(text=message), signature=signature)


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address comparison (checksummed vs lowercase)."""
    if not a or not b:
        return False
    return a.lower() == b.lower()
