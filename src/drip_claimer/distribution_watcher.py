"""
Block watcher that triggers a claim when a watched distributor transacts.

Polls the latest block over HTTP RPC, scans its transactions and hands off to
a trigger callback at most once per block. A trigger seen while a previous
one is still running is dropped.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from web3 import AsyncWeb3

from .models import WatchState


class WatcherState(Enum):
    """Lifecycle state of the distribution watcher."""
    IDLE = "idle"
    POLLING = "polling"
    DISPATCHING = "dispatching"


class DistributionWatcher:
    """
    Polls for new blocks and dispatches the claim flow on a matching sender.

    Only the chain head is inspected on each poll; blocks skipped between
    polls are not backfilled.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        state: WatchState,
        on_trigger: Callable[[], Awaitable[Any]],
        watch_window: int = 15,
        poll_interval: float = 2.0,
        error_interval: float = 4.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the distribution watcher.

        Args:
            w3: Connected AsyncWeb3 instance
            state: Shared watch state (last block, busy flag, watched senders)
            on_trigger: Coroutine function run when a distribution is detected
            watch_window: Max age in seconds of a block that may trigger
            poll_interval: Seconds between polls
            error_interval: Seconds to wait after a polling error
            clock: Wall clock returning unix seconds
        """
        self.w3 = w3
        self.state = state
        self.on_trigger = on_trigger
        self.watch_window = watch_window
        self.poll_interval = poll_interval
        self.error_interval = error_interval
        self.clock = clock

        self.status = WatcherState.IDLE
        self.is_running = False
        self.triggers_dispatched = 0
        self.triggers_dropped = 0
        self._stop_event = asyncio.Event()

        # Setup logging
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def is_fresh(self, block: Any) -> bool:
        """Whether a block's timestamp is within the watch window of now."""
        now = int(self.clock())
        timestamp = block.get("timestamp") or now
        return abs(now - timestamp) <= self.watch_window

    async def process_block(self, block: Any) -> bool:
        """
        Scan a block and dispatch on the first qualifying transaction.

        Args:
            block: Block data with full transaction objects

        Returns:
            True if the trigger callback was run for this block
        """
        fresh = self.is_fresh(block)
        for tx in block.get("transactions", []):
            sender = tx.get("from") if hasattr(tx, "get") else None
            if not fresh or not self.state.is_watched(sender):
                continue
            if self.state.busy:
                self.triggers_dropped += 1
                self.logger.debug(f"Claim already running, dropping trigger from {sender}")
                continue

            self.logger.info(
                f"DISTRIBUTION TX DETECTED from {sender} in block {block.get('number')}"
            )
            self.state.busy = True
            self.status = WatcherState.DISPATCHING
            self.triggers_dispatched += 1
            try:
                await self.on_trigger()
            except Exception as e:
                self.logger.error(f"Claim flow error: {e}")
            finally:
                self.state.busy = False
                self.status = WatcherState.POLLING
            self.logger.info("Resuming watch...")
            return True

        return False

    async def poll_once(self) -> bool:
        """
        Check the chain head and process it if it is a new block.

        Returns:
            True if a new block was fetched
        """
        head = await self.w3.eth.block_number
        if head <= self.state.last_seen_block:
            return False

        block = await self.w3.eth.get_block(head, full_transactions=True)
        self.state.last_seen_block = head
        if not block:
            return True

        await self.process_block(block)
        return True

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def start_polling(self) -> None:
        """Poll until ``stop()`` is called or the task is cancelled."""
        if self.is_running:
            self.logger.warning("Polling already running")
            return

        self.is_running = True
        self._stop_event.clear()
        self.status = WatcherState.POLLING
        self.logger.info(f"Watching distribution... (window {self.watch_window}s)")

        try:
            while self.is_running:
                try:
                    await self.poll_once()
                    delay = self.poll_interval
                except asyncio.CancelledError:
                    self.logger.info("Polling cancelled")
                    raise
                except Exception as e:
                    self.logger.warning(f"Watcher error: {e}")
                    delay = self.error_interval
                await self._sleep(delay)
        finally:
            self.is_running = False
            self.status = WatcherState.IDLE

    async def stop(self) -> None:
        """Stop the polling loop."""
        self.logger.info("Stopping distribution watcher")
        self.is_running = False
        self._stop_event.set()

    def get_status(self) -> dict[str, Any]:
        """
        Get current status of the watcher.

        Returns:
            Dictionary with status information
        """
        return {
            "status": self.status.value,
            "is_running": self.is_running,
            "last_seen_block": self.state.last_seen_block,
            "busy": self.state.busy,
            "watched_senders": sorted(self.state.watched_senders),
            "triggers_dispatched": self.triggers_dispatched,
            "triggers_dropped": self.triggers_dropped,
        }
