#!/usr/bin/env python3
"""Data models for the drip claimer.

Immutable value types for the payment flow plus the two small mutable
contexts (session and watcher state) that are shared by reference between
components.
"""

import time
from dataclasses import dataclass, field
from typing import Any

from web3 import AsyncWeb3, Web3


@dataclass(frozen=True, slots=True)
class EndpointFailure:
    """A candidate RPC endpoint that could not be used."""

    url: str
    reason: str

    def __str__(self) -> str:
        return f"{self.url} ({self.reason})"


@dataclass(frozen=True, slots=True)
class ActiveConnection:
    """The RPC endpoint selected at startup.

    Attributes:
        endpoint: URL of the selected node
        chain_id: Chain id reported by the node
        w3: Connected AsyncWeb3 instance
    """

    endpoint: str
    chain_id: int
    w3: AsyncWeb3 = field(repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Session:
    """A bearer credential obtained from a wallet-signature login."""

    token: str
    acquired_at: float = field(default_factory=time.time)

    def __str__(self) -> str:
        return f"Session(token={self.token[:8]}..., acquired_at={int(self.acquired_at)})"


@dataclass(slots=True)
class SessionContext:
    """Process-wide holder of the current session (at most one)."""

    session: Session | None = None


@dataclass(frozen=True, slots=True)
class PaymentRequirement:
    """Server-specified payment parameters for one claim attempt.

    Attributes:
        amount: Token amount (base units) every authorization must carry
        network: Network identifier echoed back on submission
        relayer_contract: Relayer that verifies the authorization
    """

    amount: int
    network: str
    relayer_contract: str

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> "PaymentRequirement":
        """Build from the ``paymentRequirements`` object of a 402 body.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the amount is not an integer
        """
        return cls(
            amount=int(data["amount"]),
            network=str(data["network"]),
            relayer_contract=Web3.to_checksum_address(data["relayerContract"]),
        )


@dataclass(frozen=True, slots=True)
class Authorization:
    """A single-use, time-bounded transfer authorization."""

    token: str
    from_address: str
    to: str
    value: int
    valid_after: int
    valid_before: int
    nonce: bytes

    @property
    def nonce_hex(self) -> str:
        return Web3.to_hex(self.nonce)

    def to_typed_message(self) -> dict[str, Any]:
        """Message dict in the shape expected by EIP-712 signing."""
        return {
            "token": self.token,
            "from": self.from_address,
            "to": self.to,
            "value": self.value,
            "validAfter": self.valid_after,
            "validBefore": self.valid_before,
            "nonce": self.nonce,
        }

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation sent to the issuance API."""
        return {
            "token": self.token,
            "from": self.from_address,
            "to": self.to,
            "value": str(self.value),
            "validAfter": self.valid_after,
            "validBefore": self.valid_before,
            "nonce": self.nonce_hex,
        }


@dataclass(frozen=True, slots=True)
class SignedAuthorization:
    """An authorization together with its typed-data signature."""

    authorization: Authorization
    signature: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "authorization": self.authorization.to_dict(),
            "signature": self.signature,
        }


@dataclass(frozen=True, slots=True)
class MintOutcome:
    """Result of submitting one authorization of a batch."""

    index: int
    success: bool
    tx_ref: str | None = None
    reason: str | None = None

    @classmethod
    def succeeded(cls, index: int, tx_ref: str | None) -> "MintOutcome":
        return cls(index=index, success=True, tx_ref=tx_ref)

    @classmethod
    def failed(cls, index: int, reason: str) -> "MintOutcome":
        return cls(index=index, success=False, reason=reason)

    def __str__(self) -> str:
        if self.success:
            return f"Mint #{self.index + 1} SUCCESS -> {self.tx_ref}"
        return f"Mint #{self.index + 1} FAILED -> {self.reason}"


@dataclass(slots=True)
class WatchState:
    """Mutable state of the distribution watcher.

    ``busy`` is the single-flight guard: while it is set, further triggers
    are dropped rather than queued.
    """

    watched_senders: frozenset[str]
    last_seen_block: int = 0
    busy: bool = False

    def __post_init__(self) -> None:
        self.watched_senders = frozenset(addr.lower() for addr in self.watched_senders)

    def is_watched(self, address: str | None) -> bool:
        return bool(address) and address.lower() in self.watched_senders
