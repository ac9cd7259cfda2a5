#!/usr/bin/env python3
"""Sequencing of one claim attempt.

login (if needed) -> approval (once) -> payment requirement -> build batch
-> blast. An expired credential is recovered once per attempt by logging in
again.
"""

import logging

from .approval import ApprovalStep
from .auth_session import AuthSessionManager
from .batch_blaster import BatchBlaster
from .batch_builder import BatchBuilder
from .errors import CredentialExpiredError
from .models import MintOutcome
from .payment_probe import PaymentProbe

logger = logging.getLogger(__name__)


class ClaimOrchestrator:
    """Runs the claim flow over the shared components."""

    MAX_REAUTH_ATTEMPTS = 1

    def __init__(
        self,
        auth: AuthSessionManager,
        approval: ApprovalStep,
        probe: PaymentProbe,
        builder: BatchBuilder,
        blaster: BatchBlaster,
        mint_count: int,
    ) -> None:
        self.auth = auth
        self.approval = approval
        self.probe = probe
        self.builder = builder
        self.blaster = blaster
        self.mint_count = mint_count

    async def run_claim_flow(self, attempt: int = 0) -> list[MintOutcome]:
        """Run one claim attempt.

        Args:
            attempt: Re-authentication attempts already made

        Returns:
            Per-item outcomes of the blasted batch

        Raises:
            CredentialExpiredError: If the credential is rejected again after re-login;
                the rejected credential is cleared before re-raising
            ClaimerError: If any other step fails
        """
        try:
            session = await self.auth.ensure_session()
            await self.approval.approve_once()
            requirement = await self.probe.fetch_requirement(session)
            batch = await self.builder.build_batch(requirement, self.mint_count)
            return await self.blaster.blast(batch, requirement, session)
        except CredentialExpiredError:
            self.auth.invalidate()
            if attempt < self.MAX_REAUTH_ATTEMPTS:
                logger.info("JWT expired, re-authenticating...")
                return await self.run_claim_flow(attempt + 1)
            raise
