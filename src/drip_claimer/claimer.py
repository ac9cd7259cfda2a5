"""
Drip claimer service.

This module wires the shared components together and exposes the two ways
of running them: a continuous watcher that claims when a distribution is
detected, and a single-shot claim.
"""

import logging
from functools import partial

import httpx

from .approval import ApprovalStep
from .auth_session import AuthSessionManager
from .batch_blaster import BatchBlaster
from .batch_builder import BatchBuilder
from .captcha_client import CaptchaClient
from .claim_orchestrator import ClaimOrchestrator
from .config import ClaimerConfig, RpcConfig
from .distribution_watcher import DistributionWatcher
from .endpoint_selector import EndpointSelector, build_candidate_list, make_web3
from .models import ActiveConnection, MintOutcome, SessionContext, WatchState
from .payment_probe import PaymentProbe
from .utils.api_client import ApiClient, build_http_client
from .utils.wallet import WalletIdentity

logger = logging.getLogger(__name__)


class DripClaimer:
    """
    Composition root for the claim pipeline.

    ``setup()`` selects the RPC endpoint and builds every component once;
    ``run_watch()`` and ``run_once()`` reuse the same instances.
    """

    def __init__(self, config: ClaimerConfig) -> None:
        """
        Initialize the DripClaimer.

        Args:
            config: Claimer configuration
        """
        self.config = config
        self.identity = WalletIdentity(config.wallet.private_key)

        self.connection: ActiveConnection | None = None
        self.session_context = SessionContext()
        self.watch_state = WatchState(watched_senders=config.watch.watched_senders)

        self._http_clients: list[httpx.AsyncClient] = []
        self.orchestrator: ClaimOrchestrator | None = None
        self.watcher: DistributionWatcher | None = None

    @classmethod
    def from_env(cls) -> "DripClaimer":
        """
        Create a DripClaimer from environment variables.

        Raises:
            ValueError: If required environment variables are missing
        """
        config = ClaimerConfig.from_env()
        config.log_config()
        return cls(config)

    async def select_endpoint(self) -> ActiveConnection:
        """Resolve the RPC endpoint used for the rest of the process."""
        candidates = build_candidate_list(
            self.config.rpc.primary,
            self.config.rpc.fallbacks,
            RpcConfig.DEFAULT_CANDIDATES,
        )
        selector = EndpointSelector(
            candidates,
            web3_factory=partial(make_web3, proxy_url=self.config.proxy_url),
            default_chain_id=RpcConfig.DEFAULT_CHAIN_ID,
        )
        return await selector.select()

    def _http_client(self, base_url: str = "") -> httpx.AsyncClient:
        client = build_http_client(
            base_url=base_url,
            proxy_url=self.config.proxy_url,
            timeout=self.config.api.request_timeout,
        )
        self._http_clients.append(client)
        return client

    async def setup(self) -> None:
        """
        Select the RPC endpoint and build all components.

        Raises:
            NoReachableEndpointError: If no RPC candidate is reachable
        """
        if self.orchestrator is not None:
            return

        if self.config.proxy_url:
            logger.info("[proxy] Outbound requests routed through configured proxy")

        self.connection = await self.select_endpoint()
        logger.info(f"[RPC] Active endpoint ready (chainId {self.connection.chain_id})")
        logger.info(f"Wallet: {self.identity.address}")

        cfg = self.config
        api = ApiClient(self._http_client(cfg.api.base_url))
        captcha = CaptchaClient(
            self._http_client(),
            api_key=cfg.captcha.api_key,
            in_url=cfg.captcha.in_url,
            res_url=cfg.captcha.res_url,
            poll_interval=cfg.captcha.poll_interval,
            max_polls=cfg.captcha.max_polls,
        )

        auth = AuthSessionManager(
            api=api,
            captcha=captcha,
            identity=self.identity,
            client_id=cfg.api.client_id,
            site_key=cfg.captcha.site_key,
            page_url=cfg.captcha.page_url,
            context=self.session_context,
        )
        approval = ApprovalStep(
            w3=self.connection.w3,
            identity=self.identity,
            token_address=cfg.api.token,
            spender=cfg.api.relayer,
            gas_price_gwei=cfg.mint.gas_price_gwei,
            gas_limit=cfg.mint.gas_limit,
        )
        builder = BatchBuilder(
            identity=self.identity,
            token_address=cfg.api.token,
            recipient=cfg.api.recipient,
            chain_id=self.connection.chain_id,
            w3=self.connection.w3,
            default_chain_id=RpcConfig.DEFAULT_CHAIN_ID,
        )

        self.orchestrator = ClaimOrchestrator(
            auth=auth,
            approval=approval,
            probe=PaymentProbe(api, cfg.api.recipient),
            builder=builder,
            blaster=BatchBlaster(api, cfg.api.recipient, cfg.api.token),
            mint_count=cfg.mint.mint_count,
        )
        self.watcher = DistributionWatcher(
            w3=self.connection.w3,
            state=self.watch_state,
            on_trigger=self.orchestrator.run_claim_flow,
            watch_window=cfg.watch.watch_window,
            poll_interval=cfg.watch.poll_interval,
            error_interval=cfg.watch.error_interval,
        )

    async def run_watch(self) -> None:
        """Log in up front, then watch for distributions indefinitely."""
        await self.setup()
        logger.info("Watcher armed - waiting for distribution...")
        await self.orchestrator.auth.ensure_session()
        await self.watcher.start_polling()

    async def run_once(self) -> list[MintOutcome]:
        """Run a single claim attempt immediately."""
        await self.setup()
        outcomes = await self.orchestrator.run_claim_flow()
        succeeded = sum(1 for o in outcomes if o.success)
        logger.info(f"Single-shot claim done: {succeeded}/{len(outcomes)} succeeded")
        return outcomes

    async def shutdown(self) -> None:
        """Stop the watcher and close HTTP clients."""
        logger.info("Shutting down DripClaimer...")
        if self.watcher is not None and self.watcher.is_running:
            await self.watcher.stop()
        for client in self._http_clients:
            await client.aclose()
        self._http_clients.clear()
        logger.info("DripClaimer stopped")
