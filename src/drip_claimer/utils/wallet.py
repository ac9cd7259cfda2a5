from typing import Any

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import Web3

# Minimal ERC-20 ABI covering the allowance approval
ERC20_APPROVE_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    }
]


class WalletIdentity:
    """
    Local signing identity derived from a private key.

    Supports plain message signing (EIP-191), typed structured data signing
    (EIP-712) and raw transaction signing. The key never leaves the process.
    """

    def __init__(self, secret: str) -> None:
        """
        Initialize the WalletIdentity.

        Args:
            secret: Private key (hex, with or without 0x prefix)
        """
        if not secret:
            raise ValueError("Private key is required for signing")

        self._account: LocalAccount = Account.from_key(secret)

    @property
    def address(self) -> str:
        """Checksummed wallet address."""
        return self._account.address

    def sign_message(self, message: str) -> str:
        """Sign a text message with the personal_sign scheme.

        Returns:
            0x-prefixed hex signature
        """
        signed = self._account.sign_message(encode_defunct(text=message))
        return Web3.to_hex(signed.signature)

    def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        message: dict[str, Any],
    ) -> str:
        """Sign EIP-712 structured data.

        Args:
            domain: Domain separator fields
            types: Struct definitions, without EIP712Domain
            message: Values of the primary struct

        Returns:
            0x-prefixed hex signature
        """
        signed = self._account.sign_typed_data(
            domain_data=domain,
            message_types=types,
            message_data=message,
        )
        return Web3.to_hex(signed.signature)

    def sign_transaction(self, tx: dict[str, Any]) -> bytes:
        """Sign a transaction dict and return the raw encoded transaction."""
        signed = self._account.sign_transaction(tx)
        return signed.raw_transaction
