#!/usr/bin/env python3
"""Shared fixtures for the drip claimer tests."""

import json
from collections.abc import Callable

import httpx
import pytest
import pytest_asyncio

from drip_claimer.models import PaymentRequirement, Session
from drip_claimer.utils.api_client import ApiClient, build_http_client
from drip_claimer.utils.wallet import WalletIdentity

TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TOKEN_ADDRESS = "0x55d398326f99059ff775485246999027b3197955"
RECIPIENT_ADDRESS = "0x742d35cc6634c0532925a3b844bc9e7595f0beb7"
RELAYER_ADDRESS = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
API_BASE = "https://api.test"

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingHandler:
    """MockTransport handler that records requests and delegates to a function."""

    def __init__(self, respond: Handler) -> None:
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.content]


@pytest.fixture
def identity():
    """A wallet identity with a fixed test key."""
    return WalletIdentity(TEST_PRIVATE_KEY)


@pytest.fixture
def requirement():
    return PaymentRequirement(
        amount=1_000_000,
        network="bsc",
        relayer_contract=RELAYER_ADDRESS,
    )


@pytest.fixture
def session():
    return Session(token="jwt-token-123")


@pytest_asyncio.fixture
async def make_api():
    """Build ApiClients over an httpx MockTransport, closed at teardown."""
    clients: list[httpx.AsyncClient] = []

    def _make(respond: Handler) -> tuple[ApiClient, RecordingHandler]:
        handler = RecordingHandler(respond)
        client = build_http_client(base_url=API_BASE, transport=httpx.MockTransport(handler))
        clients.append(client)
        return ApiClient(client), handler

    yield _make

    for client in clients:
        await client.aclose()


class FakeEth:
    """Stand-in for ``AsyncWeb3.eth`` with awaitable properties."""

    def __init__(self, chain_id=56, head=0, blocks=None):
        self.chain_id_value = chain_id
        self.head = head
        self.blocks = blocks or {}
        self.chain_id_calls = 0
        self.fetched: list[int] = []

    @staticmethod
    async def _resolve(value):
        if isinstance(value, Exception):
            raise value
        return value

    @property
    def chain_id(self):
        self.chain_id_calls += 1
        return self._resolve(self.chain_id_value)

    @property
    def block_number(self):
        return self._resolve(self.head)

    async def get_block(self, number, full_transactions=False):
        self.fetched.append(number)
        return self.blocks.get(number)


class FakeWeb3:
    def __init__(self, **kwargs):
        self.eth = FakeEth(**kwargs)
