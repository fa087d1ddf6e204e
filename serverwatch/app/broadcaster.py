"""
Fan-out of change events to live Server-Sent Events listeners.

Each listener owns a bounded queue. Publishing never waits: a listener
whose queue is full or closed counts as disconnected and is dropped,
the rest still get the event.
"""

import asyncio
import json
import logging
import uuid
from typing import AsyncIterator, Dict, Optional

from .snapshot import ChangeEvent

logger = logging.getLogger(__name__)

KEEPALIVE = ": keep-alive\n\n"


class Listener:
    def __init__(self, broadcaster: "Broadcaster", queue_size: int):
        self.id = uuid.uuid4().hex
        self._broadcaster = broadcaster
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue(maxsize=queue_size)
        self.closed = False

    def offer(self, message: str) -> bool:
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        # wake a reader blocked on get()
        try:
            self._queue.put_nowait(None)
        except asyncio.QueueFull:
            pass

    async def stream(self, heartbeat_s: float = 25.0) -> AsyncIterator[str]:
        """SSE frames for this listener until it is closed or the consumer stops."""
        try:
            while not self.closed:
                try:
                    message = await asyncio.wait_for(self._queue.get(), timeout=heartbeat_s)
                except asyncio.TimeoutError:
                    yield KEEPALIVE
                    continue
                if message is None:
                    break
                yield f"data: {message}\n\n"
        finally:
            self._broadcaster.unsubscribe(self.id)


class Broadcaster:
    def __init__(self, queue_size: int = 16):
        self.queue_size = queue_size
        self._listeners: Dict[str, Listener] = {}

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self) -> Listener:
        listener = Listener(self, self.queue_size)
        self._listeners[listener.id] = listener
        logger.info(f"Listener {listener.id} subscribed ({len(self._listeners)} connected)")
        return listener

    def unsubscribe(self, listener_id: str) -> None:
        listener = self._listeners.pop(listener_id, None)
        if listener is None:
            return
        listener.close()
        logger.info(f"Listener {listener_id} unsubscribed ({len(self._listeners)} connected)")

    def publish(self, event: ChangeEvent) -> int:
        message = json.dumps(event.to_message(), ensure_ascii=False)
        delivered = 0
        for listener in list(self._listeners.values()):
            if listener.offer(message):
                delivered += 1
            else:
                logger.warning(f"Listener {listener.id} not accepting events, dropping it")
                self.unsubscribe(listener.id)
        return delivered

    def close(self) -> None:
        for listener_id in list(self._listeners):
            self.unsubscribe(listener_id)
