"""Tagged events delivered from background scans and queries."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union


class ResponseKind(str, Enum):
    TEXT = "text"
    TYPING = "typing"
    CLEAR_HISTORY = "clear_history"
    ERROR = "error"
    EXIT = "exit"


@dataclass(frozen=True)
class Response:
    """Reply to one submitted query, tagged so control signals never look like text."""

    kind: ResponseKind
    text: str = ""
    query_id: int = 0

    @property
    def is_error(self) -> bool:
        return self.kind is ResponseKind.ERROR

    @property
    def is_final(self) -> bool:
        return self.kind is not ResponseKind.TYPING


@dataclass(frozen=True)
class ScanProgress:
    stage: str
    progress: float
    message: str


@dataclass(frozen=True)
class ScanFinished:
    root: str
    success: bool
    file_count: int = 0
    symbol_count: int = 0
    message: str = ""


Event = Union[Response, ScanProgress, ScanFinished]
Subscriber = Callable[[Event], None]


# Pending events kept for polling consumers; the oldest is dropped past this.
DEFAULT_MAX_PENDING = 1000


class EventChannel:
    """Thread-safe event channel with synchronous subscribers and a polling buffer.

    Subscribers run on the publishing thread, which is usually a background
    worker rather than the caller that triggered the work. Events are buffered
    for :meth:`get` and :meth:`drain` only while nobody is subscribed.
    """

    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING) -> None:
        self._queue: "queue.Queue[Event]" = queue.Queue(maxsize=max(1, max_pending))
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

    def publish(self, event: Event) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
            if not subscribers:
                self._enqueue(event)
        for subscriber in subscribers:
            subscriber(event)

    def pending(self) -> int:
        return self._queue.qsize()

    def get(self, timeout: Optional[float] = None) -> Event:
        """Block until the next event arrives; raises ``queue.Empty`` on timeout."""
        return self._queue.get(timeout=timeout)

    def drain(self) -> List[Event]:
        events: List[Event] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def _enqueue(self, event: Event) -> None:
        while True:
            try:
                self._queue.put_nowait(event)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass
