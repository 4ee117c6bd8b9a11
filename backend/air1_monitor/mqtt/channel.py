"""Ordered supervisor → consumer event queue.

Sends never block and never raise. Once the consumer side closes the
channel, further events are dropped and counted; the supervisor is not
told about it.
"""
from __future__ import annotations

import logging
import queue
import threading
from typing import Iterator, Optional

from air1_monitor.mqtt.events import MetricEvent

logger = logging.getLogger(__name__)


class EventChannel:
    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[MetricEvent] = queue.SimpleQueue()
        self._closed = threading.Event()
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, event: MetricEvent) -> None:
        if self._closed.is_set():
            if self.dropped == 0:
                logger.debug("Event channel closed, dropping %r", event)
            self.dropped += 1
            return
        self._queue.put_nowait(event)

    def try_receive(self) -> Optional[MetricEvent]:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> Iterator[MetricEvent]:
        """Yield queued events in delivery order until the queue is empty."""
        while True:
            event = self.try_receive()
            if event is None:
                return
            yield event

    def close(self) -> None:
        self._closed.set()
