"""Tests for the distribution watcher."""

import asyncio

import pytest

from drip_claimer.distribution_watcher import DistributionWatcher, WatcherState
from drip_claimer.models import WatchState

from conftest import FakeWeb3

NOW = 1_700_000_000
DISTRIBUTOR = "0xafcD15f17D042eE3dB94CdF6530A97bf32A74E02"
STRANGER = "0x" + "22" * 20


def make_block(number: int, senders: list[str], timestamp: int = NOW) -> dict:
    return {
        "number": number,
        "timestamp": timestamp,
        "transactions": [{"from": s, "hash": f"0x{number:02x}{i:02x}"} for i, s in enumerate(senders)],
    }


class TriggerRecorder:
    """Async trigger that counts calls and can be held open."""

    def __init__(self, hold: bool = False, error: Exception | None = None):
        self.calls = 0
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.hold = hold
        self.error = error

    async def __call__(self):
        self.calls += 1
        self.entered.set()
        if self.hold:
            await self.release.wait()
        if self.error:
            raise self.error


@pytest.fixture
def watch_state():
    return WatchState(watched_senders=frozenset({DISTRIBUTOR}))


def make_watcher(state, trigger, w3=None, **kwargs) -> DistributionWatcher:
    kwargs.setdefault("clock", lambda: float(NOW))
    return DistributionWatcher(w3 or FakeWeb3(), state, trigger, **kwargs)


class TestProcessBlock:
    """Tests for block scanning and dispatch."""

    @pytest.mark.asyncio
    async def test_case_folded_sender_triggers_once(self, watch_state):
        """Test that a differently cased watched sender triggers exactly once per block."""
        trigger = TriggerRecorder()
        watcher = make_watcher(watch_state, trigger)
        block = make_block(100, [STRANGER, DISTRIBUTOR.upper().replace("0X", "0x"), DISTRIBUTOR.lower()])

        assert await watcher.process_block(block) is True
        assert trigger.calls == 1
        assert watcher.triggers_dispatched == 1
        assert watch_state.busy is False

    @pytest.mark.asyncio
    async def test_unwatched_sender_ignored(self, watch_state):
        trigger = TriggerRecorder()
        watcher = make_watcher(watch_state, trigger)

        assert await watcher.process_block(make_block(100, [STRANGER])) is False
        assert trigger.calls == 0

    @pytest.mark.asyncio
    async def test_stale_block_ignored(self, watch_state):
        """Test that a block older than the watch window does not trigger."""
        trigger = TriggerRecorder()
        watcher = make_watcher(watch_state, trigger, watch_window=15)

        assert await watcher.process_block(make_block(100, [DISTRIBUTOR], timestamp=NOW - 16)) is False
        assert await watcher.process_block(make_block(101, [DISTRIBUTOR], timestamp=NOW - 15)) is True
        assert trigger.calls == 1

    @pytest.mark.asyncio
    async def test_missing_timestamp_counts_as_fresh(self, watch_state):
        trigger = TriggerRecorder()
        watcher = make_watcher(watch_state, trigger)
        block = {"number": 5, "transactions": [{"from": DISTRIBUTOR}]}

        assert await watcher.process_block(block) is True

    @pytest.mark.asyncio
    async def test_transaction_hashes_are_skipped(self, watch_state):
        """Test that non-object transaction entries are ignored."""
        trigger = TriggerRecorder()
        watcher = make_watcher(watch_state, trigger)
        block = {"number": 5, "timestamp": NOW, "transactions": ["0xdeadbeef"]}

        assert await watcher.process_block(block) is False

    @pytest.mark.asyncio
    async def test_trigger_dropped_while_busy(self, watch_state):
        """Test that a second detection during a running claim is dropped, not queued."""
        trigger = TriggerRecorder(hold=True)
        watcher = make_watcher(watch_state, trigger)

        first = asyncio.create_task(watcher.process_block(make_block(100, [DISTRIBUTOR])))
        await asyncio.wait_for(trigger.entered.wait(), timeout=1)
        assert watch_state.busy is True
        assert watcher.get_status()["status"] == WatcherState.DISPATCHING.value

        second = await watcher.process_block(make_block(101, [DISTRIBUTOR]))
        assert second is False
        assert watcher.triggers_dropped == 1

        trigger.release.set()
        assert await asyncio.wait_for(first, timeout=1) is True
        assert trigger.calls == 1
        assert watch_state.busy is False

    @pytest.mark.asyncio
    async def test_trigger_error_clears_busy(self, watch_state):
        """Test that a failing claim is logged and the watcher can trigger again."""
        trigger = TriggerRecorder(error=RuntimeError("claim blew up"))
        watcher = make_watcher(watch_state, trigger)

        assert await watcher.process_block(make_block(100, [DISTRIBUTOR])) is True
        assert watch_state.busy is False
        assert await watcher.process_block(make_block(101, [DISTRIBUTOR])) is True
        assert trigger.calls == 2


class TestPollOnce:
    """Tests for head polling."""

    @pytest.mark.asyncio
    async def test_new_head_is_fetched_and_recorded(self, watch_state):
        trigger = TriggerRecorder()
        w3 = FakeWeb3(head=100, blocks={100: make_block(100, [DISTRIBUTOR])})
        watcher = make_watcher(watch_state, trigger, w3=w3)

        assert await watcher.poll_once() is True
        assert watch_state.last_seen_block == 100
        assert w3.eth.fetched == [100]
        assert trigger.calls == 1

    @pytest.mark.asyncio
    async def test_same_head_not_refetched(self, watch_state):
        """Test that a block is processed at most once."""
        trigger = TriggerRecorder()
        w3 = FakeWeb3(head=100, blocks={100: make_block(100, [DISTRIBUTOR])})
        watcher = make_watcher(watch_state, trigger, w3=w3)

        await watcher.poll_once()
        assert await watcher.poll_once() is False
        assert w3.eth.fetched == [100]
        assert trigger.calls == 1

    @pytest.mark.asyncio
    async def test_older_head_ignored(self, watch_state):
        watch_state.last_seen_block = 120
        w3 = FakeWeb3(head=110)
        watcher = make_watcher(watch_state, TriggerRecorder(), w3=w3)

        assert await watcher.poll_once() is False
        assert w3.eth.fetched == []
        assert watch_state.last_seen_block == 120

    @pytest.mark.asyncio
    async def test_only_head_is_fetched(self, watch_state):
        """Test that skipped intermediate blocks are not backfilled."""
        watch_state.last_seen_block = 100
        w3 = FakeWeb3(head=105, blocks={105: make_block(105, [])})
        watcher = make_watcher(watch_state, TriggerRecorder(), w3=w3)

        await watcher.poll_once()
        assert w3.eth.fetched == [105]

    @pytest.mark.asyncio
    async def test_missing_block_still_advances(self, watch_state):
        w3 = FakeWeb3(head=100)
        watcher = make_watcher(watch_state, TriggerRecorder(), w3=w3)

        assert await watcher.poll_once() is True
        assert watch_state.last_seen_block == 100


class TestPollingLoop:
    """Tests for the polling loop lifecycle."""

    @pytest.mark.asyncio
    async def test_stop_ends_loop(self, watch_state):
        w3 = FakeWeb3(head=1, blocks={1: make_block(1, [])})
        watcher = make_watcher(watch_state, TriggerRecorder(), w3=w3, poll_interval=0.01)

        task = asyncio.create_task(watcher.start_polling())
        await asyncio.sleep(0.05)
        assert watcher.is_running is True

        await watcher.stop()
        await asyncio.wait_for(task, timeout=1)

        status = watcher.get_status()
        assert status["is_running"] is False
        assert status["status"] == "idle"
        assert status["last_seen_block"] == 1

    @pytest.mark.asyncio
    async def test_rpc_error_does_not_stop_loop(self, watch_state):
        """Test that polling errors are logged and polling continues."""
        w3 = FakeWeb3(head=ConnectionError("rpc down"))
        watcher = make_watcher(
            watch_state, TriggerRecorder(), w3=w3, poll_interval=0.01, error_interval=0.01
        )

        task = asyncio.create_task(watcher.start_polling())
        await asyncio.sleep(0.03)
        w3.eth.head = 7
        await asyncio.sleep(0.05)
        await watcher.stop()
        await asyncio.wait_for(task, timeout=1)

        assert watch_state.last_seen_block == 7

    @pytest.mark.asyncio
    async def test_cancel_propagates(self, watch_state):
        watcher = make_watcher(watch_state, TriggerRecorder(), w3=FakeWeb3(head=0), poll_interval=10)

        task = asyncio.create_task(watcher.start_polling())
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert watcher.is_running is False
