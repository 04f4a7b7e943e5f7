"""
Change notification for configuration events.

A typed-channel registry: each ChangeEventType maps to an ordered list of
callbacks. ``subscribe`` hands back a disposer instead of requiring
producers or consumers to inherit from anything.
"""

import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from ..infrastructure.redaction import filter_sensitive_data

logger = logging.getLogger(__name__)


class ChangeEventType(str, Enum):
    RELOAD = "reload"
    ERROR = "error"
    VALIDATION = "validation"
    BACKUP = "backup"


@dataclass(frozen=True)
class ChangeEvent:
    """A single notification emitted by the hot-reload manager."""
    type: ChangeEventType
    message: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_id": self.event_id,
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "payload": filter_sensitive_data(self.payload) if redact else dict(self.payload),
        }


ChangeCallback = Callable[[ChangeEvent], Any]
Disposer = Callable[[], None]


class ChangeNotifier:
    """Publish/subscribe over ChangeEventType channels."""

    def __init__(self, max_history: int = 100):
        self._subscribers: Dict[ChangeEventType, List[Tuple[str, ChangeCallback]]] = {
            event_type: [] for event_type in ChangeEventType
        }
        self._history: Deque[ChangeEvent] = deque(maxlen=max_history)
        self._pending: set = set()

    def subscribe(self, event_type: ChangeEventType, callback: ChangeCallback) -> Disposer:
        """
        Register ``callback`` for ``event_type``.

        Returns a disposer; calling it removes the subscription and is safe
        to call more than once.
        """
        event_type = ChangeEventType(event_type)
        subscription_id = str(uuid.uuid4())
        self._subscribers[event_type].append((subscription_id, callback))
        logger.debug("Subscribed %s to %s events", subscription_id, event_type.value)

        def dispose() -> None:
            handlers = self._subscribers[event_type]
            self._subscribers[event_type] = [h for h in handlers if h[0] != subscription_id]

        return dispose

    def subscriber_count(self, event_type: Optional[ChangeEventType] = None) -> int:
        if event_type is not None:
            return len(self._subscribers[ChangeEventType(event_type)])
        return sum(len(handlers) for handlers in self._subscribers.values())

    def publish(self, event: ChangeEvent) -> int:
        """
        Deliver ``event`` to every subscriber of its type, in subscription order.

        Callback exceptions are logged and never propagated. Coroutine
        callbacks are scheduled on the running loop. Returns the number of
        callbacks invoked.
        """
        self._history.append(event)
        delivered = 0
        # Copy so callbacks may dispose themselves during delivery
        for subscription_id, callback in list(self._subscribers[event.type]):
            try:
                outcome = callback(event)
                if asyncio.iscoroutine(outcome):
                    self._schedule(outcome, subscription_id, event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Change subscriber %s failed for %s event", subscription_id, event.type.value
                )
        return delivered

    def _schedule(self, coro, subscription_id: str, event: ChangeEvent) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.error(
                "No running event loop for async subscriber %s of %s event",
                subscription_id, event.type.value
            )
            return

        self._pending.add(task)

        def done(finished: asyncio.Task) -> None:
            self._pending.discard(finished)
            if finished.cancelled():
                return
            error = finished.exception()
            if error is not None:
                logger.error(
                    "Async change subscriber %s failed for %s event: %s",
                    subscription_id, event.type.value, error
                )

        task.add_done_callback(done)

    def recent_events(self, event_type: Optional[ChangeEventType] = None, limit: Optional[int] = None) -> List[ChangeEvent]:
        events = list(self._history)
        if event_type is not None:
            events = [e for e in events if e.type == ChangeEventType(event_type)]
        if limit is not None:
            events = events[-limit:]
        return events

    def clear(self) -> None:
        for event_type in self._subscribers:
            self._subscribers[event_type] = []
        self._history.clear()
