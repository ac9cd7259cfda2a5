#!/usr/bin/env python3
"""One-time unlimited allowance approval for the payment relayer."""

import logging
from typing import Any

from web3 import AsyncWeb3, Web3
from web3.types import TxReceipt

from .errors import ApprovalError
from .utils.wallet import ERC20_APPROVE_ABI, WalletIdentity

logger = logging.getLogger(__name__)

MAX_UINT256 = 2**256 - 1


class ApprovalStep:
    """Grants the relayer an unlimited allowance over the payment token.

    Idempotent for the lifetime of the process: after the first confirmed
    approval further calls return immediately.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        identity: WalletIdentity,
        token_address: str,
        spender: str,
        gas_price_gwei: int | None = None,
        gas_limit: int | None = None,
        receipt_timeout: float = 120,
    ) -> None:
        """
        Initialize the ApprovalStep.

        Args:
            w3: Connected AsyncWeb3 instance
            identity: Wallet that owns the tokens
            token_address: Payment token contract
            spender: Relayer receiving the allowance
            gas_price_gwei: Optional legacy gas price override
            gas_limit: Optional gas limit override
            receipt_timeout: Seconds to wait for confirmation
        """
        self.w3 = w3
        self.identity = identity
        self.token_address = Web3.to_checksum_address(token_address)
        self.spender = Web3.to_checksum_address(spender)
        self.gas_price_gwei = gas_price_gwei
        self.gas_limit = gas_limit
        self.receipt_timeout = receipt_timeout
        self.approved = False

        self.contract = self.w3.eth.contract(address=self.token_address, abi=ERC20_APPROVE_ABI)

    def _gas_options(self) -> dict[str, Any]:
        opts: dict[str, Any] = {}
        if self.gas_price_gwei:
            opts["gasPrice"] = Web3.to_wei(self.gas_price_gwei, "gwei")
        if self.gas_limit:
            opts["gas"] = self.gas_limit
        return opts

    async def approve_once(self) -> None:
        """Approve the relayer unless this process already did.

        Raises:
            ApprovalError: If the transaction cannot be sent or is reverted
        """
        if self.approved:
            logger.debug("Relayer allowance already approved, skipping")
            return

        logger.info(f"Approving unlimited allowance of {self.token_address} for {self.spender}...")
        try:
            nonce = await self.w3.eth.get_transaction_count(self.identity.address)
            tx = await self.contract.functions.approve(self.spender, MAX_UINT256).build_transaction({
                "from": self.identity.address,
                "nonce": nonce,
                **self._gas_options(),
            })
            raw_tx = self.identity.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(raw_tx)
            logger.info(f"Approve TX: {Web3.to_hex(tx_hash)}")

            receipt: TxReceipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except Exception as e:
            raise ApprovalError(f"Approval transaction failed: {e}") from e

        if (status := receipt.get("status", 0)) != 1:
            raise ApprovalError(f"Approval transaction reverted with status={status}")

        self.approved = True
        logger.info(f"✓ Unlimited allowance approved in block {receipt.get('blockNumber')}")
