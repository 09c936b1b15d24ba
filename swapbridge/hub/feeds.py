"""Queue-backed feeds between the hub connection and application code.

A TopicWatcher buffers inbound events for one subscription; when its
consumer falls behind, the oldest events are dropped. A TopicNotifier
buffers outbound items for one topic and publishes them from a worker
thread in submission order; when it is full, the producer blocks.
"""

import logging
import queue
import threading
from typing import Any, Callable, Iterator, Optional

from .events import Event

logger = logging.getLogger(__name__)

_CLOSED = object()


class TopicWatcher:
    """Blocking iterator over the events of one subscription."""

    def __init__(
        self,
        pattern: str,
        qos: int = 0,
        queue_size: int = 1000,
        on_close: Optional[Callable[["TopicWatcher"], None]] = None,
    ):
        """Initialize the watcher.

        Args:
            pattern: MQTT topic filter this watcher is fed from.
            qos: QoS used for the subscription.
            queue_size: Maximum buffered events, 0 for unbounded.
            on_close: Called once when the watcher is closed.
        """
        self.pattern = pattern
        self.qos = qos
        self.dropped = 0
        self._maxsize = queue_size
        # unbounded underneath; only events count against queue_size
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._on_close = on_close

    def _put(self, item: Any, bounded: bool = True) -> bool:
        """Enqueue, evicting the oldest entry when full. Returns True on eviction."""
        evicted = False
        with self._lock:
            while bounded and self._maxsize > 0 and self._queue.qsize() >= self._maxsize:
                try:
                    oldest = self._queue.get_nowait()
                except queue.Empty:
                    break
                if oldest is _CLOSED:
                    self._queue.put_nowait(_CLOSED)
                    break
                evicted = True
            self._queue.put_nowait(item)
        return evicted

    def put(self, event: Event):
        """Hand an inbound event to the watcher. Never blocks."""
        if self._closed.is_set():
            return
        if self._put(event):
            self.dropped += 1
            if self.dropped == 1 or self.dropped % 100 == 0:
                logger.warning(
                    f"Consumer of {self.pattern} is falling behind, "
                    f"{self.dropped} events dropped so far"
                )

    def get(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Wait for the next event; None on timeout or once closed."""
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _CLOSED:
            # leave the marker for any other consumer
            self._put(_CLOSED, bounded=False)
            return None
        return item

    def __iter__(self) -> Iterator[Event]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def close(self):
        """Stop the subscription and end iteration after buffered events."""
        if self._closed.is_set():
            return
        self._closed.set()
        if self._on_close:
            self._on_close(self)
        self._put(_CLOSED, bounded=False)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()


class TopicNotifier:
    """Write-only feed that publishes everything sent to it on one topic."""

    def __init__(
        self,
        topic: str,
        publish: Callable[[str, Any, bool], Any],
        retain: bool = False,
        queue_size: int = 1000,
    ):
        self.topic = topic
        self.retain = retain
        self._publish = publish
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=queue_size)
        self._closed = threading.Event()
        self._thread = threading.Thread(
            target=self._drain,
            name=f"notifier:{topic}",
            daemon=True,
        )
        self._thread.start()

    def _drain(self):
        while True:
            item = self._queue.get()
            try:
                if item is _CLOSED:
                    return
                self._publish(self.topic, item, self.retain)
            except Exception as e:
                logger.error(f"Error publishing to {self.topic}: {e}")
            finally:
                self._queue.task_done()

    def send(self, item: Any, timeout: Optional[float] = None) -> bool:
        """Queue an item for publishing, blocking while the queue is full.

        Returns:
            False if the notifier is closed or the timeout expired.
        """
        if self._closed.is_set():
            logger.warning(f"Notifier for {self.topic} is closed, dropping {item!r}")
            return False
        try:
            self._queue.put(item, timeout=timeout)
        except queue.Full:
            logger.warning(f"Notifier queue for {self.topic} is full, dropping {item!r}")
            return False
        return True

    def flush(self):
        """Block until every queued item has been published."""
        self._queue.join()

    def close(self, timeout: Optional[float] = None):
        """Publish what is queued, then stop the worker thread."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._queue.put(_CLOSED)
        self._thread.join(timeout=timeout)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()
