"""
Launch event subscription and dispatch.

A receive loop decodes subscription messages and queues launch events; a
dispatch loop starts one independent handler task per event. Neither loop
ever awaits a swap, so slow launches never delay new ones.
"""

import asyncio
import functools
import logging
from typing import Any

from .events import (
    TRANSFER_TOPIC,
    LaunchSource,
    decode_launch_log,
    decode_transfer_log,
)
from .models import LaunchEvent

logger = logging.getLogger(__name__)

# Oldest Transfer watch is dropped beyond this many
MAX_TRANSFER_WATCHES = 20


class EventSubscriber:
    """
    Binds a LaunchHandler to one or more factory event streams.

    run() only returns by raising TransportClosedError: a closed socket is
    fatal and recovery belongs to the process supervisor.
    """

    def __init__(
        self,
        client,
        handler,
        sources: list[LaunchSource],
        watch_transfers: bool = True,
        max_transfer_watches: int = MAX_TRANSFER_WATCHES,
    ) -> None:
        self.client = client
        self.handler = handler
        self.sources = sources
        self.watch_transfers = watch_transfers
        self.max_transfer_watches = max_transfer_watches
        self._queue: asyncio.Queue[tuple[LaunchEvent, LaunchSource]] = asyncio.Queue()
        self._launch_subs: dict[str, LaunchSource] = {}
        self._transfer_subs: dict[str, str] = {}
        self._tasks: set[asyncio.Task] = set()
        self.dispatched = 0

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def start(self) -> None:
        """Subscribe to every configured factory's launch event."""
        for source in self.sources:
            sub_id = await self.client.subscribe_logs(source.factory_address, [source.topic])
            self._launch_subs[sub_id] = source
            logger.info(
                "Listening for %s on %s (%s), subscription %s",
                source.event_name, source.factory_address, source.name, sub_id,
            )

    async def run(self) -> None:
        dispatcher = asyncio.create_task(self._dispatch_loop())
        try:
            async for sub_id, log in self.client.subscriptions():
                self.on_message(sub_id, log)
        finally:
            dispatcher.cancel()

    def on_message(self, sub_id: str, log: dict[str, Any]) -> None:
        if log.get("removed"):
            # Reorged-out log; the launch was already seen when it was live
            logger.debug("Ignoring removed log on subscription %s: %s", sub_id, log.get("transactionHash"))
            return

        source = self._launch_subs.get(sub_id)
        if source is not None:
            try:
                event = decode_launch_log(log, source)
            except Exception:
                logger.warning("Could not decode %s log, dropping", source.event_name, exc_info=True)
                return
            logger.info(
                "%s event received: collection=%s token=%s name=%s symbol=%s range=%s",
                source.event_name, event.collection, event.token, event.name,
                event.symbol, event.id_range,
            )
            self._queue.put_nowait((event, source))
            return

        if sub_id in self._transfer_subs:
            self._log_transfer(log)
            return

        logger.debug("Message for unknown subscription %s", sub_id)

    async def _dispatch_loop(self) -> None:
        while True:
            event, source = await self._queue.get()
            self.dispatch(event, source)

    def dispatch(self, event: LaunchEvent, source: LaunchSource) -> asyncio.Task:
        """Start the handler for one event. Exactly one task per event."""
        resolve_hook = functools.partial(self.client.hook_address, source.factory_address)
        task = asyncio.create_task(
            self.handler.handle(event, resolve_hook), name=f"launch-{event.token}"
        )
        self._track(task)
        self.dispatched += 1

        if self.watch_transfers:
            self._track(asyncio.create_task(self.attach_transfer_listener(event.token)))
        return task

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Task %s crashed", task.get_name(), exc_info=exc)

    async def attach_transfer_listener(self, token: str) -> bool:
        """Observe Transfer logs of a launched token. Purely informational."""
        try:
            sub_id = await self.client.subscribe_logs(token, [TRANSFER_TOPIC])
        except Exception as e:
            logger.warning("Could not attach Transfer listener for %s: %s", token, e)
            return False
        self._transfer_subs[sub_id] = token
        logger.info("Watching Transfer events of %s (subscription %s)", token, sub_id)
        await self._evict_transfer_watches()
        return True

    async def _evict_transfer_watches(self) -> None:
        """Unsubscribe the oldest Transfer watches beyond max_transfer_watches."""
        while len(self._transfer_subs) > self.max_transfer_watches:
            sub_id = next(iter(self._transfer_subs))
            token = self._transfer_subs.pop(sub_id)
            try:
                await self.client.unsubscribe(sub_id)
            except Exception as e:
                logger.warning("Could not unsubscribe Transfer watch %s (%s): %s", sub_id, token, e)
                continue
            logger.info("Stopped watching Transfer events of %s (subscription %s)", token, sub_id)

    def _log_transfer(self, log: dict[str, Any]) -> None:
        try:
            transfer = decode_transfer_log(log)
        except Exception:
            logger.debug("Undecodable Transfer log", exc_info=True)
            return
        logger.info(
            "[Token Transfer] %s: %s -> %s amount %d",
            transfer.token, transfer.sender, transfer.recipient, transfer.value,
        )
