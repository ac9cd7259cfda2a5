#!/usr/bin/env python3
"""RPC endpoint selection for the drip claimer.

Resolves a usable chain RPC endpoint from a prioritized candidate list once
at startup. There is no background re-resolution.
"""

import logging
from collections.abc import Callable, Iterable

from web3 import AsyncWeb3

from .errors import NoReachableEndpointError
from .models import ActiveConnection, EndpointFailure

# Get logger for this module
logger = logging.getLogger(__name__)

Web3Factory = Callable[[str], AsyncWeb3]


def build_candidate_list(
    primary: str | None,
    fallbacks: Iterable[str],
    defaults: Iterable[str],
) -> list[str]:
    """Build the ordered candidate list.

    The explicit endpoint comes first, then configured fallbacks, then the
    built-in defaults. Blank entries are dropped and duplicates keep their
    first position.
    """
    ordered: list[str] = []
    for url in (primary, *fallbacks, *defaults):
        url = (url or "").strip()
        if url and url not in ordered:
            ordered.append(url)
    return ordered


def make_web3(url: str, proxy_url: str | None = None) -> AsyncWeb3:
    """Create an AsyncWeb3 instance over HTTP, optionally through a proxy."""
    request_kwargs = {"proxy": proxy_url} if proxy_url else None
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(url, request_kwargs=request_kwargs))


class EndpointSelector:
    """Tries RPC candidates in order and keeps the first that answers."""

    def __init__(
        self,
        candidates: list[str],
        web3_factory: Web3Factory = make_web3,
        default_chain_id: int = 56,
    ) -> None:
        """
        Initialize the EndpointSelector.

        Args:
            candidates: Ordered, de-duplicated endpoint URLs
            web3_factory: Creates an AsyncWeb3 for a URL
            default_chain_id: Used when a node reports chain id 0
        """
        self.candidates = list(candidates)
        self.web3_factory = web3_factory
        self.default_chain_id = default_chain_id
        self.failures: list[EndpointFailure] = []

    async def select(self) -> ActiveConnection:
        """Return the first candidate that answers a chain id query.

        Raises:
            NoReachableEndpointError: If no candidates are configured or all fail
        """
        if not self.candidates:
            raise NoReachableEndpointError([], "No RPC endpoints configured.")

        self.failures = []
        for url in self.candidates:
            try:
                logger.info(f"[RPC] Trying {url} ...")
                w3 = self.web3_factory(url)
                chain_id = int(await w3.eth.chain_id)
            except Exception as e:
                reason = str(e) or type(e).__name__
                logger.warning(f"[RPC] {url} failed: {reason}")
                self.failures.append(EndpointFailure(url=url, reason=reason))
                continue

            logger.info(f"[RPC] Connected to {url} (chainId {chain_id or 'unknown'})")
            return ActiveConnection(
                endpoint=url,
                chain_id=chain_id or self.default_chain_id,
                w3=w3,
            )

        raise NoReachableEndpointError(self.failures)
