#!/usr/bin/env python3
"""Concurrent submission of a batch of signed authorizations."""

import asyncio
import logging
from typing import Any

from .models import MintOutcome, PaymentRequirement, Session, SignedAuthorization
from .payment_probe import DRIP_PATH
from .utils.api_client import ApiClient

logger = logging.getLogger(__name__)


class BatchBlaster:
    """Submits every authorization of a batch at once.

    All submissions are started before any is awaited. Each one resolves to
    its own ``MintOutcome``; a failing item never affects its siblings.
    """

    def __init__(self, api: ApiClient, recipient: str, token_address: str) -> None:
        self.api = api
        self.recipient = recipient
        self.token_address = token_address

    def build_payload(self, item: SignedAuthorization, requirement: PaymentRequirement) -> dict[str, Any]:
        return {
            "recipientAddress": self.recipient,
            "paymentPayload": {
                "token": self.token_address,
                "payload": item.to_payload(),
            },
            "paymentRequirements": {
                "network": requirement.network,
                "relayerContract": requirement.relayer_contract,
            },
        }

    async def _submit_one(
        self,
        index: int,
        item: SignedAuthorization,
        requirement: PaymentRequirement,
        session: Session,
    ) -> MintOutcome:
        try:
            response = await self.api.post(
                DRIP_PATH, self.build_payload(item, requirement), bearer=session.token
            )
            if response.ok:
                tx_ref = response.data.get("nftTransaction") if isinstance(response.data, dict) else None
                outcome = MintOutcome.succeeded(index, tx_ref)
            else:
                outcome = MintOutcome.failed(index, f"HTTP {response.status_code}: {response.describe()}")
        except Exception as e:
            outcome = MintOutcome.failed(index, str(e) or type(e).__name__)

        if outcome.success:
            logger.info(f"✓ {outcome}")
        else:
            logger.warning(f"✗ {outcome}")
        return outcome

    async def blast(
        self,
        batch: list[SignedAuthorization],
        requirement: PaymentRequirement,
        session: Session,
    ) -> list[MintOutcome]:
        """Submit all authorizations concurrently and wait for every one.

        Returns:
            One outcome per item, in submission order
        """
        logger.info(f"Blasting {len(batch)} authorizations...")
        outcomes = await asyncio.gather(*(
            self._submit_one(i, item, requirement, session) for i, item in enumerate(batch)
        ))

        succeeded = sum(1 for o in outcomes if o.success)
        logger.info(f"Batch complete: {succeeded} succeeded, {len(outcomes) - succeeded} failed")
        return list(outcomes)
