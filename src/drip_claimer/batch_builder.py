#!/usr/bin/env python3
"""Construction of signed transfer authorizations.

Each authorization in a batch is built on its own: fresh random nonce,
validity window anchored to the moment the item is built, and an EIP-712
signature bound to the relayer of the current payment requirement.
"""

import logging
import secrets
import time
from collections.abc import Callable
from typing import Any

from web3 import AsyncWeb3, Web3

from .models import Authorization, PaymentRequirement, SignedAuthorization
from .utils.wallet import WalletIdentity

# Get logger for this module
logger = logging.getLogger(__name__)

DOMAIN_NAME = "B402"
DOMAIN_VERSION = "1"
VALID_AFTER_GRACE = 20  # seconds in the past
VALID_FOR = 1800  # seconds in the future
NONCE_BYTES = 32
MAX_NONCE_DRAWS = 8

TRANSFER_WITH_AUTHORIZATION_TYPES: dict[str, list[dict[str, str]]] = {
    "TransferWithAuthorization": [
        {"name": "token", "type": "address"},
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ]
}


class BatchBuilder:
    """Builds batches of independently signed authorizations."""

    def __init__(
        self,
        identity: WalletIdentity,
        token_address: str,
        recipient: str,
        chain_id: int | None = None,
        w3: AsyncWeb3 | None = None,
        default_chain_id: int = 56,
        clock: Callable[[], float] = time.time,
        nonce_factory: Callable[[], bytes] = lambda: secrets.token_bytes(NONCE_BYTES),
    ) -> None:
        """
        Initialize the BatchBuilder.

        Args:
            identity: Wallet that signs every authorization
            token_address: Payment token contract
            recipient: Address the value is transferred to
            chain_id: Chain id of the active connection, if already known
            w3: Used to resolve the chain id when it was not supplied
            default_chain_id: Fallback when the node reports no chain id
            clock: Wall clock returning unix seconds
            nonce_factory: Source of 32-byte nonces
        """
        self.identity = identity
        self.token_address = Web3.to_checksum_address(token_address)
        self.recipient = Web3.to_checksum_address(recipient)
        self.w3 = w3
        self.default_chain_id = default_chain_id
        self.clock = clock
        self.nonce_factory = nonce_factory
        self._chain_id: int | None = chain_id
        self._issued_nonces: set[bytes] = set()

    async def resolve_chain_id(self) -> int:
        """Chain id for the signing domain, resolved once and cached."""
        if self._chain_id is None:
            chain_id = await self.w3.eth.chain_id if self.w3 is not None else None
            self._chain_id = int(chain_id or self.default_chain_id)
            logger.debug(f"Resolved signing chain id {self._chain_id}")
        return self._chain_id

    @staticmethod
    def domain(chain_id: int, relayer_contract: str) -> dict[str, Any]:
        return {
            "name": DOMAIN_NAME,
            "version": DOMAIN_VERSION,
            "chainId": chain_id,
            "verifyingContract": relayer_contract,
        }

    def _next_nonce(self) -> bytes:
        """Draw a nonce never issued before by this builder."""
        for _ in range(MAX_NONCE_DRAWS):
            nonce = self.nonce_factory()
            if len(nonce) != NONCE_BYTES:
                raise ValueError(f"Nonce must be {NONCE_BYTES} bytes, got {len(nonce)}")
            if nonce not in self._issued_nonces:
                self._issued_nonces.add(nonce)
                return nonce
            logger.warning("Nonce collision, drawing again")
        raise RuntimeError(f"Could not draw a fresh nonce in {MAX_NONCE_DRAWS} attempts")

    def build_authorization(self, amount: int) -> Authorization:
        """Assemble one unsigned authorization anchored to the current time."""
        nonce = self._next_nonce()
        now = int(self.clock())
        return Authorization(
            token=self.token_address,
            from_address=self.identity.address,
            to=self.recipient,
            value=amount,
            valid_after=now - VALID_AFTER_GRACE,
            valid_before=now + VALID_FOR,
            nonce=nonce,
        )

    def sign(self, authorization: Authorization, chain_id: int, relayer_contract: str) -> SignedAuthorization:
        signature = self.identity.sign_typed_data(
            self.domain(chain_id, relayer_contract),
            TRANSFER_WITH_AUTHORIZATION_TYPES,
            authorization.to_typed_message(),
        )
        return SignedAuthorization(authorization=authorization, signature=signature)

    async def build_batch(self, requirement: PaymentRequirement, count: int) -> list[SignedAuthorization]:
        """Build and sign ``count`` independent authorizations.

        Args:
            requirement: Payment requirement of the current attempt
            count: Number of authorizations to build

        Returns:
            Signed authorizations in construction order

        Raises:
            ValueError: If count is less than 1
        """
        if count < 1:
            raise ValueError(f"Batch size must be at least 1, got {count}")

        chain_id = await self.resolve_chain_id()
        logger.info(f"Building {count} authorizations (chainId {chain_id})...")

        batch: list[SignedAuthorization] = []
        for i in range(count):
            authorization = self.build_authorization(requirement.amount)
            batch.append(self.sign(authorization, chain_id, requirement.relayer_contract))
            logger.debug(f"Authorization {i + 1}/{count} signed")

        logger.info(f"✓ Built {len(batch)} authorizations")
        return batch
