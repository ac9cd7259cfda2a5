#!/usr/bin/env python3
"""Configuration management for the drip claimer.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables with sensible defaults
where appropriate.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import ClassVar
from urllib.parse import urlparse

from web3 import Web3

# Get logger for this module
logger = logging.getLogger(__name__)

DEFAULT_WATCH_ADDRESSES: tuple[str, ...] = (
    "0x39dcdd14a0c40e19cd8c892fd00e9e7963cd49d3",
    "0xafcD15f17D042eE3dB94CdF6530A97bf32A74E02",
)

PROXY_ENV_VARS: tuple[str, ...] = ("PROXY", "HTTPS_PROXY", "HTTP_PROXY", "ALL_PROXY")

DEFAULT_CAPTCHA_PAGE_URL = "https://www.b402.ai/experience-b402"
DEFAULT_CAPTCHA_IN_URL = "https://api.sctg.xyz/in.php"
DEFAULT_CAPTCHA_RES_URL = "https://api.sctg.xyz/res.php"


def split_list(value: str | None) -> list[str]:
    """Split a comma and/or whitespace separated list, dropping blanks."""
    if not value:
        return []
    return [item for item in re.split(r"[,\s]+", value.strip()) if item]


def _checksum(value: str, label: str) -> str:
    if not value:
        raise ValueError(f"{label} is required")
    if not Web3.is_address(value):
        raise ValueError(f"Invalid {label}: {value}")
    return Web3.to_checksum_address(value)


def _validate_url(value: str, label: str) -> None:
    if not value:
        raise ValueError(f"{label} is required")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid {label}: {value}. Expected an http(s) URL")


def _optional_float(name: str) -> float | None:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else None


def _optional_int(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else None


@dataclass(frozen=True, slots=True)
class WalletConfig:
    """Signing key for the claiming wallet."""

    private_key: str = field(repr=False)

    def __post_init__(self) -> None:
        """Validate the private key format."""
        if not self.private_key:
            raise ValueError("Private key is required (PRIVATE_KEY)")

        key = self.private_key.removeprefix("0x")
        if len(key) != 64:
            raise ValueError(
                f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
            )
        try:
            int(key, 16)
        except ValueError:
            raise ValueError("Invalid private key format. Must be hexadecimal") from None


@dataclass(frozen=True, slots=True)
class ApiConfig:
    """Issuance API endpoint and the addresses used in claims.

    Attributes:
        base_url: Base URL of the issuance API (no trailing slash)
        client_id: Client id sent with the login challenge
        recipient: Address that receives the minted item
        relayer: Spender granted the token allowance
        token: Payment token contract
        request_timeout: Optional HTTP timeout in seconds (None disables it)
    """

    base_url: str
    client_id: str
    recipient: str
    relayer: str
    token: str
    request_timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate API configuration."""
        _validate_url(self.base_url, "API base URL (API_BASE)")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

        if not self.client_id:
            raise ValueError("Client id is required (CLIENT_ID)")

        object.__setattr__(self, "recipient", _checksum(self.recipient, "recipient address (RECIPIENT)"))
        object.__setattr__(self, "relayer", _checksum(self.relayer, "relayer address (RELAYER)"))
        object.__setattr__(self, "token", _checksum(self.token, "token address (TOKEN)"))

        if self.request_timeout is not None and self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")


@dataclass(frozen=True, slots=True)
class CaptchaConfig:
    """Captcha-solving service settings."""

    api_key: str = field(repr=False)
    site_key: str
    page_url: str = DEFAULT_CAPTCHA_PAGE_URL
    in_url: str = DEFAULT_CAPTCHA_IN_URL
    res_url: str = DEFAULT_CAPTCHA_RES_URL
    poll_interval: float = 5.0
    max_polls: int | None = None

    def __post_init__(self) -> None:
        """Validate captcha configuration."""
        if not self.api_key:
            raise ValueError("Captcha service key is required (SCTG_KEY)")
        if not self.site_key:
            raise ValueError("Turnstile site key is required (TURNSTILE_SITEKEY)")
        _validate_url(self.page_url, "captcha page URL (CAPTCHA_PAGE_URL)")
        _validate_url(self.in_url, "captcha submit URL (SCTG_IN_URL)")
        _validate_url(self.res_url, "captcha result URL (SCTG_RES_URL)")
        if self.poll_interval <= 0:
            raise ValueError(f"Captcha poll interval must be positive, got {self.poll_interval}")
        if self.max_polls is not None and self.max_polls < 1:
            raise ValueError(f"Captcha max polls must be at least 1, got {self.max_polls}")


@dataclass(frozen=True, slots=True)
class RpcConfig:
    """RPC endpoint candidates.

    Attributes:
        primary: Explicitly configured endpoint tried first
        fallbacks: Extra endpoints tried after the primary
    """

    primary: str | None = None
    fallbacks: tuple[str, ...] = ()

    DEFAULT_CANDIDATES: ClassVar[tuple[str, ...]] = (
        "https://bsc-dataseed.binance.org",
        "https://bsc-dataseed1.ninicoin.io",
        "https://bsc-dataseed1.defibit.io",
        "https://bsc-dataseed1.bnbchain.org",
        "https://rpc.ankr.com/bsc",
        "https://bscrpc.com",
    )
    DEFAULT_CHAIN_ID: ClassVar[int] = 56


@dataclass(frozen=True, slots=True)
class WatchConfig:
    """Distribution watcher settings."""

    watched_senders: frozenset[str] = frozenset(a.lower() for a in DEFAULT_WATCH_ADDRESSES)
    watch_window: int = 15  # max block age in seconds
    poll_interval: float = 2.0
    error_interval: float = 4.0

    def __post_init__(self) -> None:
        """Validate watcher configuration."""
        if not self.watched_senders:
            raise ValueError("At least one watched sender address is required (WATCH_ADDRESSES)")
        senders = frozenset(a.lower() for a in self.watched_senders)
        for address in senders:
            if not Web3.is_address(address):
                raise ValueError(f"Invalid watched sender address: {address}")
        object.__setattr__(self, "watched_senders", senders)

        if self.watch_window <= 0:
            raise ValueError(f"Watch window must be positive, got {self.watch_window}")
        if self.poll_interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {self.poll_interval}")
        if self.error_interval <= 0:
            raise ValueError(f"Error interval must be positive, got {self.error_interval}")


@dataclass(frozen=True, slots=True)
class MintConfig:
    """Batch and approval transaction settings."""

    mint_count: int = 500
    gas_price_gwei: int | None = None
    gas_limit: int | None = None

    def __post_init__(self) -> None:
        """Validate mint configuration."""
        if self.mint_count < 1:
            raise ValueError(f"Mint count must be at least 1, got {self.mint_count}")
        if self.gas_price_gwei is not None and self.gas_price_gwei <= 0:
            raise ValueError(f"Gas price must be positive, got {self.gas_price_gwei}")
        if self.gas_limit is not None and self.gas_limit <= 0:
            raise ValueError(f"Gas limit must be positive, got {self.gas_limit}")


@dataclass(frozen=True, slots=True)
class ClaimerConfig:
    """Main configuration for the drip claimer."""

    wallet: WalletConfig
    api: ApiConfig
    captcha: CaptchaConfig
    rpc: RpcConfig = field(default_factory=RpcConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    mint: MintConfig = field(default_factory=MintConfig)
    proxy_url: str | None = None

    @classmethod
    def from_env(cls) -> "ClaimerConfig":
        """Load configuration from environment variables.

        Returns:
            ClaimerConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        env = os.environ

        wallet = WalletConfig(private_key=env.get("PRIVATE_KEY", "").strip())

        api = ApiConfig(
            base_url=env.get("API_BASE", "").strip(),
            client_id=env.get("CLIENT_ID", "").strip(),
            recipient=env.get("RECIPIENT", "").strip(),
            relayer=env.get("RELAYER", "").strip(),
            token=env.get("TOKEN", "").strip(),
            request_timeout=_optional_float("REQUEST_TIMEOUT"),
        )

        captcha = CaptchaConfig(
            api_key=env.get("SCTG_KEY", "").strip(),
            site_key=env.get("TURNSTILE_SITEKEY", "").strip(),
            page_url=env.get("CAPTCHA_PAGE_URL") or DEFAULT_CAPTCHA_PAGE_URL,
            in_url=env.get("SCTG_IN_URL") or DEFAULT_CAPTCHA_IN_URL,
            res_url=env.get("SCTG_RES_URL") or DEFAULT_CAPTCHA_RES_URL,
            poll_interval=float(env.get("CAPTCHA_POLL_INTERVAL", "5")),
            max_polls=_optional_int("CAPTCHA_MAX_POLLS"),
        )

        rpc = RpcConfig(
            primary=env.get("RPC", "").strip() or None,
            fallbacks=tuple(split_list(env.get("RPC_FALLBACKS"))),
        )

        watched = split_list(env.get("WATCH_ADDRESSES")) or list(DEFAULT_WATCH_ADDRESSES)
        watch = WatchConfig(
            watched_senders=frozenset(watched),
            watch_window=int(env.get("WATCH_WINDOW", "15")),
            poll_interval=float(env.get("POLL_INTERVAL", "2")),
            error_interval=float(env.get("ERROR_INTERVAL", "4")),
        )

        mint = MintConfig(
            mint_count=int(env.get("MINT_COUNT", "500")),
            gas_price_gwei=_optional_int("GAS_PRICE_GWEI"),
            gas_limit=_optional_int("GAS_LIMIT"),
        )

        proxy_url = next((env[name] for name in PROXY_ENV_VARS if env.get(name)), None)

        return cls(
            wallet=wallet,
            api=api,
            captcha=captcha,
            rpc=rpc,
            watch=watch,
            mint=mint,
            proxy_url=proxy_url,
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format (secrets hidden)."""
        logger.info("=" * 60)
        logger.info("Drip Claimer Configuration")
        logger.info("=" * 60)

        logger.info("Issuance API:")
        logger.info(f"  Base URL: {self.api.base_url}")
        logger.info(f"  Client ID: {self.api.client_id}")
        logger.info(f"  Recipient: {self.api.recipient}")
        logger.info(f"  Relayer: {self.api.relayer}")
        logger.info(f"  Token: {self.api.token}")
        logger.info(f"  Request Timeout: {self.api.request_timeout or 'none'}")

        logger.info("Captcha:")
        logger.info(f"  Submit URL: {self.captcha.in_url}")
        logger.info(f"  Result URL: {self.captcha.res_url}")
        logger.info(f"  Poll Interval: {self.captcha.poll_interval} seconds")
        logger.info(f"  Max Polls: {self.captcha.max_polls or 'unbounded'}")

        logger.info("RPC:")
        logger.info(f"  Primary: {self.rpc.primary or '[NOT SET]'}")
        logger.info(f"  Fallbacks: {len(self.rpc.fallbacks)}")

        logger.info("Watcher:")
        logger.info(f"  Watched Senders: {', '.join(sorted(self.watch.watched_senders))}")
        logger.info(f"  Watch Window: {self.watch.watch_window} seconds")
        logger.info(f"  Poll Interval: {self.watch.poll_interval} seconds")

        logger.info("Mint:")
        logger.info(f"  Mint Count: {self.mint.mint_count}")
        if self.mint.gas_price_gwei:
            logger.info(f"  Gas Price: {self.mint.gas_price_gwei} gwei")

        logger.info(f"Proxy: {'[CONFIGURED]' if self.proxy_url else '[NOT SET]'}")
        logger.info("Wallet Key: [CONFIGURED]")
        logger.info("=" * 60)
