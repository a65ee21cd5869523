"""
The bors event process.

All webhook deliveries are funneled through one unbounded queue and handled by
a single consumer task, strictly one event at a time in arrival order. The
next event is not dequeued before the previous handler has finished,
including its database and GitHub calls, so handlers never race each other.

A failing handler is logged and skipped. Nothing is retried here; GitHub's
webhook redelivery is the only retry mechanism.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from bors.core.logging import delivery_id_var, get_logger
from bors.events import BorsEvent, Refresh, RepositoryEvent

logger = get_logger(__name__)

EventHandler = Callable[[BorsEvent], Awaitable[None]]

# Enqueued by close() to end the consumer loop
_CLOSE = object()


class ProcessClosedError(RuntimeError):
    """Raised when an event is enqueued after the process was closed."""


class BorsProcess:
    """
    Single-consumer event queue.

    Usage:
        process = BorsProcess(handler)
        task = process.start()
        process.enqueue(event)
        ...
        await process.close()
    """

    def __init__(self, handler: EventHandler):
        self.handler = handler
        self.queue: asyncio.Queue = asyncio.Queue()
        self.task: Optional[asyncio.Task] = None
        self.closed = False

    def enqueue(self, event: BorsEvent) -> None:
        """Hand an event off to the consumer. Never blocks."""
        if self.closed:
            raise ProcessClosedError("Event process is closed")
        self.queue.put_nowait(event)

    def start(self) -> asyncio.Task:
        if self.task is None or self.task.done():
            self.task = asyncio.create_task(self.run(), name="bors-process")
            logger.info("Event process started")
        return self.task

    async def run(self) -> None:
        """Consume events until the process is closed."""
        while True:
            event = await self.queue.get()
            try:
                if event is _CLOSE:
                    break
                await self._handle(event)
            finally:
                self.queue.task_done()
        logger.info("Event process finished")

    async def _handle(self, event: BorsEvent) -> None:
        token = delivery_id_var.set(event.delivery_id)
        try:
            await self.handler(event)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.error(
                "Error while handling %s (repository=%s, delivery=%s)",
                event.event_name,
                event.repository if isinstance(event, RepositoryEvent) else "-",
                event.delivery_id,
                exc_info=True,
            )
        finally:
            delivery_id_var.reset(token)

    async def close(self) -> None:
        """Stop accepting events and wait until the queued ones are handled."""
        if self.closed:
            return
        self.closed = True
        self.queue.put_nowait(_CLOSE)
        if self.task is not None:
            await self.task


async def refresh_ticker(process: BorsProcess, interval: float) -> None:
    """Enqueue a Refresh event every `interval` seconds until cancelled."""
    logger.info("Refresh ticker started (every %.0fs)", interval)
    while True:
        await asyncio.sleep(interval)
        try:
            process.enqueue(Refresh())
        except ProcessClosedError:
            logger.info("Refresh ticker stopped: event process is closed")
            return
