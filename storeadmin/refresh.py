# storeadmin/refresh.py

"""
Live Refresh Coordinator.

Every mounted view owns one coordinator. Three independent triggers end up
in the same place, the view's reload():

1. the shell's refresh key changed (sign-in, editor closed ...)
2. the poll timer fired and live updates are on
3. the backend pushed a change on the orders table and live updates are on

Reloads are full fetch-and-replace, so overlapping ones are allowed and
the last one to finish wins. Nothing is coalesced.
"""

import asyncio
import logging
from collections import Counter
from typing import Awaitable, Callable, Optional, Set

from storeadmin.realtime import ChangeEvent, RealtimeChannel
from storeadmin.state import Observable, SharedState

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0


class LiveRefreshCoordinator:
    def __init__(
        self,
        name: str,
        reload: Callable[[], Awaitable[None]],
        state: SharedState,
        refresh_key: Observable[int],
        channel: RealtimeChannel,
        interval: float = DEFAULT_POLL_INTERVAL,
        table: str = "orders",
    ):
        self.name = name
        self.reload = reload
        self.state = state
        self.refresh_key = refresh_key
        self.channel = channel
        self.interval = interval
        self.table = table

        self.triggers: Counter = Counter()
        self._live = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._unsubscribers = []
        self._realtime_unsubscribe: Optional[Callable[[], None]] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def realtime_subscribed(self) -> bool:
        return self._realtime_unsubscribe is not None

    def start(self) -> None:
        """Must be called from the event loop the reloads should run on"""
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        self._running = True

        # Cache the flag; the poll loop never re-reads the state file
        self._live = self.state.live_updates.get()
        self._unsubscribers.append(self.state.live_updates.subscribe(self._on_live_updates))
        self._unsubscribers.append(self.refresh_key.subscribe(lambda _key: self.trigger("refresh-key")))
        if self._live:
            self._subscribe_realtime()

        self._poll_task = self._loop.create_task(self._poll(), name=f"poll:{self.name}")

    async def stop(self) -> None:
        """Cancel polling and in-flight reloads; late results are dropped"""
        self._running = False
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._unsubscribe_realtime()

        tasks = list(self._inflight)
        if self._poll_task is not None:
            tasks.append(self._poll_task)
            self._poll_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

    def trigger(self, reason: str) -> Optional[asyncio.Task]:
        """Start an independent reload. Loop thread only."""
        if not self._running:
            return None
        self.triggers[reason] += 1
        logger.debug("%s: reload (%s)", self.name, reason)
        task = self._loop.create_task(self._run(reason))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def drain(self) -> None:
        """Wait until no reload is in flight, including ones started meanwhile"""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _run(self, reason: str) -> None:
        try:
            await self.reload()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s: reload triggered by %s failed", self.name, reason)

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if self._live:
                self.trigger("poll")

    def _on_live_updates(self, enabled: bool) -> None:
        self._live = enabled
        if enabled:
            self._subscribe_realtime()
        else:
            self._unsubscribe_realtime()

    def _on_change(self, event: ChangeEvent) -> None:
        # Publishers may sit on a worker thread
        if self._loop is not None and self._running:
            self._loop.call_soon_threadsafe(self.trigger, "realtime")

    def _subscribe_realtime(self) -> None:
        if self._realtime_unsubscribe is None:
            self._realtime_unsubscribe = self.channel.subscribe(self.table, self._on_change)

    def _unsubscribe_realtime(self) -> None:
        if self._realtime_unsubscribe is not None:
            self._realtime_unsubscribe()
            self._realtime_unsubscribe = None
