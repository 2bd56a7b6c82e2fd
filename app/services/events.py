import asyncio
import enum
import inspect
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)


class SplitAction(str, enum.Enum):
    CREATE = "create"
    CONFIRM = "confirm"
    DECLINE = "decline"
    SETTLE = "settle"


@dataclass(frozen=True)
class SplitEvent:
    split_id: int
    action: SplitAction
    actor_user_id: Optional[int]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "split_id": self.split_id,
            "action": self.action.value,
            "actor_user_id": self.actor_user_id,
            "timestamp": self.timestamp.isoformat(),
        }


EventHandler = Callable[[SplitEvent], Any]


class EventBus:
    """In-process fan-out of split events to subscribers.

    Delivery is fire-and-forget: a failing subscriber is logged and never
    reaches the publisher. Coroutine subscribers are scheduled as tasks on
    the running loop.
    """

    def __init__(self):
        self._handlers: List[EventHandler] = []
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, handler: EventHandler) -> EventHandler:
        self._handlers.append(handler)
        return handler

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def publish(self, event: SplitEvent) -> None:
        for handler in list(self._handlers):
            try:
                result = handler(event)
            except Exception:
                logger.exception("split event handler %r failed for %s", handler, event.to_dict())
                continue

            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending.add(task)
                task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("async split event handler failed", exc_info=task.exception())

    async def drain(self) -> None:
        """Wait for scheduled coroutine handlers. Used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def log_split_event(event: SplitEvent) -> None:
    logger.info(
        "split %s: %s by user %s",
        event.split_id,
        event.action.value,
        event.actor_user_id,
    )
