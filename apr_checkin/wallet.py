"""Wallet identity: sign-in message signing and the on-chain checkIn() call."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

CHECKIN_CONTRACT_ADDRESS = "0x703e753E9a2aCa1194DED65833EAec17dcFeAc1b"
CHECKIN_CONTRACT_ABI = [
    {
        "inputs": [],
        "name": "checkIn",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    }
]
MONAD_CHAIN_ID = 10143
RPC_TIMEOUT = 30

# Markers in RPC error text meaning the contract already counted today.
_BENIGN_MARKERS = ("already", "revert")

logger = logging.getLogger(__name__)


class TransactionFailed(Exception):
    """The checkIn() transaction was mined but its receipt reports failure."""


def build_sign_message(nonce: Dict[str, Any]) -> str:
    """Return the text to sign for a nonce response.

    The API either supplies the full sign-in message or only its fields, in
    which case the EIP-4361 style text is assembled here.
    """
    if nonce.get("message"):
        return nonce["message"]
    return (
        f"{nonce.get('domain')} wants you to sign in with your Ethereum account:\n"
        f"{nonce.get('address')}\n\n"
        f"{nonce.get('statement')}\n\n"
        f"URI: {nonce.get('uri')}\n"
        f"Version: {nonce.get('version')}\n"
        f"Chain ID: {nonce.get('chainId')}\n"
        f"Nonce: {nonce.get('nonce')}\n"
        f"Issued At: {nonce.get('issuedAt')}\n"
        f"Expiration Time: {nonce.get('expirationTime')}"
    )


def is_already_checked_in(error: BaseException) -> bool:
    """True when a contract error means no new check-in is possible today."""
    text = str(error).lower()
    return any(marker in text for marker in _BENIGN_MARKERS)


def mask_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


class CheckInWallet:
    """A single wallet bound to the Monad RPC endpoint."""

    def __init__(self, private_key: str, rpc_url: str, receipt_timeout: int = 180) -> None:
        self.account = Account.from_key(private_key)
        self.rpc_url = rpc_url
        self.receipt_timeout = receipt_timeout
        self._w3: Optional[Web3] = None

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def w3(self) -> Web3:
        if self._w3 is None:
            self._w3 = Web3(Web3.HTTPProvider(self.rpc_url, request_kwargs={"timeout": RPC_TIMEOUT}))
        return self._w3

    def sign_message(self, message: str) -> str:
        """Sign ``message`` with personal_sign (EIP-191); returns 0x-prefixed hex."""
        signed = self.account.sign_message(encode_defunct(text=message))
        return Web3.to_hex(signed.signature)

    def send_check_in(self) -> str:
        """Send checkIn() and block until it is mined.

        Returns the 0x-prefixed transaction hash. Gas estimation raises the
        contract's revert reason before anything is broadcast; a mined but
        failed receipt raises TransactionFailed.
        """
        w3 = self.w3
        contract = w3.eth.contract(
            address=Web3.to_checksum_address(CHECKIN_CONTRACT_ADDRESS),
            abi=CHECKIN_CONTRACT_ABI,
        )
        tx = contract.functions.checkIn().build_transaction(
            {
                "from": self.address,
                "nonce": w3.eth.get_transaction_count(self.address),
                "chainId": MONAD_CHAIN_ID,
            }
        )
        signed = self.account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hex = Web3.to_hex(tx_hash)
        logger.info("Sent checkIn() transaction %s, waiting for confirmation", tx_hex)

        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        if receipt["status"] != 1:
            raise TransactionFailed(f"checkIn() transaction {tx_hex} failed in block {receipt['blockNumber']}")
        logger.info("Transaction %s confirmed in block %s", tx_hex, receipt["blockNumber"])
        return tx_hex
