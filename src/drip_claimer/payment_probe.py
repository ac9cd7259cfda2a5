#!/usr/bin/env python3
"""No-payment probe that discovers the current payment requirement."""

import logging

from .errors import CredentialExpiredError, RequirementNotObtainedError
from .models import PaymentRequirement, Session
from .utils.api_client import ApiClient

logger = logging.getLogger(__name__)

DRIP_PATH = "/faucet/drip"


class PaymentProbe:
    """Requests a drip without payment and reads the 402 requirements."""

    def __init__(self, api: ApiClient, recipient: str) -> None:
        self.api = api
        self.recipient = recipient

    async def fetch_requirement(self, session: Session) -> PaymentRequirement:
        """Fetch the payment requirement for this attempt.

        HTTP 402 is the expected answer. Anything else means the flow cannot
        continue.

        Raises:
            CredentialExpiredError: On HTTP 401
            RequirementNotObtainedError: On any status other than 402, or a
                402 without usable requirements
        """
        logger.info("Fetching payment requirement...")
        response = await self.api.post(DRIP_PATH, {"recipientAddress": self.recipient}, bearer=session.token)

        match response.status_code:
            case 402:
                pass
            case 401:
                raise CredentialExpiredError("Payment probe rejected with HTTP 401", body=response.data)
            case status:
                raise RequirementNotObtainedError(
                    f"Cannot obtain payment requirement: drip returned HTTP {status} "
                    f"instead of 402: {response.describe()}",
                    status_code=status,
                    body=response.data,
                )

        raw = response.data.get("paymentRequirements") if isinstance(response.data, dict) else None
        if not isinstance(raw, dict):
            raise RequirementNotObtainedError(
                f"402 response without paymentRequirements: {response.describe()}",
                status_code=402,
                body=response.data,
            )
        try:
            requirement = PaymentRequirement.from_response(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise RequirementNotObtainedError(
                f"Malformed paymentRequirements ({e}): {response.describe()}",
                status_code=402,
                body=response.data,
            ) from e

        logger.info(
            f"Payment requirement found: amount={requirement.amount} "
            f"network={requirement.network} relayer={requirement.relayer_contract}"
        )
        return requirement
