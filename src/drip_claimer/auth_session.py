#!/usr/bin/env python3
"""Wallet-signature login and bearer credential lifecycle.

The session lives in a shared ``SessionContext``: it is acquired once,
reused by every authenticated call, cleared when a call comes back with
HTTP 401 and then acquired again.
"""

import logging
import uuid
from enum import Enum
from typing import Any

from .captcha_client import CaptchaClient
from .errors import AuthenticationError
from .models import Session, SessionContext
from .utils.api_client import ApiClient
from .utils.wallet import WalletIdentity

# Get logger for this module
logger = logging.getLogger(__name__)

WALLET_TYPE = "evm"


class AuthState(Enum):
    """Login progress of the session manager."""
    NO_SESSION = "no_session"
    SOLVING = "solving"
    CHALLENGING = "challenging"
    VERIFIED = "verified"


class AuthSessionManager:
    """Performs challenge/response login and caches the bearer credential."""

    def __init__(
        self,
        api: ApiClient,
        captcha: CaptchaClient,
        identity: WalletIdentity,
        client_id: str,
        site_key: str,
        page_url: str,
        context: SessionContext | None = None,
    ) -> None:
        """
        Initialize the AuthSessionManager.

        Args:
            api: Issuance API client
            captcha: Captcha client used before every login
            identity: Wallet that signs the challenge
            client_id: Client id registered with the issuance API
            site_key: Turnstile site key of the login page
            page_url: Page URL the captcha is solved for
            context: Shared session holder (a fresh one if omitted)
        """
        self.api = api
        self.captcha = captcha
        self.identity = identity
        self.client_id = client_id
        self.site_key = site_key
        self.page_url = page_url
        self.context = context if context is not None else SessionContext()
        self.state = AuthState.VERIFIED if self.context.session else AuthState.NO_SESSION

    async def _request_challenge(self, captcha_token: str) -> tuple[str, dict[str, Any]]:
        lid = str(uuid.uuid4())
        response = await self.api.post("/auth/web3/challenge", {
            "walletType": WALLET_TYPE,
            "walletAddress": self.identity.address,
            "clientId": self.client_id,
            "lid": lid,
            "turnstileToken": captcha_token,
        })
        response.raise_for_status("Challenge request")
        if not isinstance(response.data, dict):
            raise AuthenticationError(f"Unexpected challenge response: {response.describe()}")
        return lid, response.data

    async def _verify(self, lid: str, signature: str, captcha_token: str) -> dict[str, Any]:
        response = await self.api.post("/auth/web3/verify", {
            "walletType": WALLET_TYPE,
            "walletAddress": self.identity.address,
            "clientId": self.client_id,
            "lid": lid,
            "signature": signature,
            "turnstileToken": captcha_token,
        })
        response.raise_for_status("Challenge verification")
        if not isinstance(response.data, dict):
            raise AuthenticationError(f"Unexpected verify response: {response.describe()}")
        return response.data

    async def login(self) -> Session:
        """Log in with a fresh captcha token and a signed challenge.

        Returns:
            The new session, also stored in the shared context

        Raises:
            CaptchaError: If the captcha could not be solved
            ApiError: If the challenge or verify call is rejected
            AuthenticationError: If a response lacks the message or bearer
        """
        try:
            self.state = AuthState.SOLVING
            logger.info("Solving captcha for login...")
            captcha_token = await self.captcha.solve(self.site_key, self.page_url)

            self.state = AuthState.CHALLENGING
            lid, challenge = await self._request_challenge(captcha_token)
            if not (message := challenge.get("message")):
                raise AuthenticationError("Challenge response missing message field")

            signature = self.identity.sign_message(message)
            verified = await self._verify(lid, signature, captcha_token)

            token = verified.get("jwt") or verified.get("token")
            if not token:
                raise AuthenticationError("Login failed: no jwt/token returned")
        except BaseException:
            self.state = AuthState.NO_SESSION
            raise

        self.context.session = Session(token=token)
        self.state = AuthState.VERIFIED
        logger.info(f"✓ Logged in as {self.identity.address}")
        return self.context.session

    async def ensure_session(self) -> Session:
        """Return the cached session, logging in if there is none."""
        if self.context.session is not None:
            return self.context.session
        return await self.login()

    def invalidate(self) -> None:
        """Drop the cached credential after it was rejected."""
        if self.context.session is not None:
            logger.info("Bearer credential expired, clearing session")
        self.context.session = None
        self.state = AuthState.NO_SESSION
