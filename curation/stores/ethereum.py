"""
Ethereum / EVM contract store.
Works for Ethereum mainnet, Sepolia testnet, and any EVM-compatible chain.

The contract exposes a generic key/value surface:
  isAvailable() view returns (bool)
  getData(string key) view returns (bytes)
  setData(string key, bytes value)
"""

import json
import logging
import os
from pathlib import Path

from curation.errors import StoreUnavailable
from curation.stores.base import KeyValueStore, check_key

logger = logging.getLogger(__name__)


STORE_ABI = [
    {
        "name": "isAvailable",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "getData",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "key", "type": "string"}],
        "outputs": [{"name": "", "type": "bytes"}],
    },
    {
        "name": "setData",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "key", "type": "string"},
            {"name": "value", "type": "bytes"},
        ],
        "outputs": [],
    },
]


class EthereumStore(KeyValueStore):
    """
    Reads and writes records through a key/value smart contract.

    Reads are free calls. Writes are signed transactions sent from the
    account behind `private_key` and block until mined.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        contract_abi: list = None,
        private_key: str = None,
        chain_name: str = "ethereum",
        receipt_timeout: int = 120,
    ):
        self.rpc_url = rpc_url
        self.contract_address = contract_address
        self.chain_name = chain_name
        self.receipt_timeout = receipt_timeout
        self._private_key = private_key
        self._abi = contract_abi or STORE_ABI
        self._w3 = None
        self._contract = None
        self._account = None

    def _connect(self):
        """Lazy connection to the chain."""
        if self._w3 is not None:
            return

        from web3 import Web3
        from web3.middleware import ExtraDataToPoa

        self._w3 = Web3(Web3.HTTPProvider(self.rpc_url))
        self._w3.middleware_onion.inject(ExtraDataToPoa, layer=0)

        if self._private_key:
            self._account = self._w3.eth.account.from_key(self._private_key)

        self._contract = self._w3.eth.contract(
            address=Web3.to_checksum_address(self.contract_address),
            abi=self._abi,
        )

    @property
    def address(self) -> str:
        return self.contract_address

    @property
    def chain_id(self) -> int:
        self._connect()
        return self._w3.eth.chain_id

    def is_available(self) -> bool:
        """Check the chain is reachable and the contract reports ready."""
        try:
            self._connect()
            if not self._w3.is_connected():
                return False
            return bool(self._contract.functions.isAvailable().call())
        except Exception as e:
            logger.warning("Store %s on %s unreachable: %s", self.contract_address, self.chain_name, e)
            return False

    def get_data(self, key: str) -> bytes:
        check_key(key)
        self._connect()
        try:
            return bytes(self._contract.functions.getData(key).call())
        except Exception as e:
            raise StoreUnavailable(f"getData({key}) failed on {self.chain_name}: {e}") from e

    def set_data(self, key: str, value: bytes) -> None:
        """Send a setData transaction and wait for it to be mined."""
        check_key(key)
        self._connect()

        if not self._account:
            raise StoreUnavailable("A private key must be configured to write to the store")

        try:
            tx = self._contract.functions.setData(key, bytes(value)).build_transaction({
                "from": self._account.address,
                "nonce": self._w3.eth.get_transaction_count(self._account.address),
                "gasPrice": self._w3.eth.gas_price,
                "chainId": self._w3.eth.chain_id,
            })
            gas_estimate = self._w3.eth.estimate_gas(tx)
            tx["gas"] = int(gas_estimate * 1.2)

            signed = self._account.sign_transaction(tx)
            tx_hash = self._w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except Exception as e:
            raise StoreUnavailable(f"setData({key}) failed on {self.chain_name}: {e}") from e

        if receipt.status != 1:
            raise StoreUnavailable(
                f"setData({key}) reverted in tx {receipt.transactionHash.hex()}"
            )
        logger.debug("setData(%s) mined in block %s", key, receipt.blockNumber)

    def get_info(self) -> dict:
        """Get chain and contract info."""
        info = {
            "backend": "ethereum",
            "chain": self.chain_name,
            "rpc_url": self.rpc_url,
            "address": self.contract_address,
            "connected": self._w3.is_connected() if self._w3 else False,
            "can_write": self._private_key is not None,
        }
        return info

    @classmethod
    def from_deployment(cls, deployment_file: str | Path, private_key: str = None) -> "EthereumStore":
        """Create a store from a saved deployment JSON file."""
        data = json.loads(Path(deployment_file).read_text())

        # Load ABI from adjacent file
        abi_file = Path(deployment_file).parent / "ToolStore.abi.json"
        abi = json.loads(abi_file.read_text()) if abi_file.exists() else None

        return cls(
            rpc_url=data.get("rpc_url", os.environ.get("SEPOLIA_RPC_URL", "")),
            contract_address=data["contract_address"],
            contract_abi=abi,
            private_key=private_key or os.environ.get("CURATION_PRIVATE_KEY"),
            chain_name=data.get("network", "ethereum"),
        )
