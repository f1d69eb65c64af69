"""Fan-out of current meal updates to connected observers."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Protocol

from fastapi.encoders import jsonable_encoder

from calorie_assistant.domain.current_meal import MealView

MEAL_UPDATED_EVENT = "meal-updated"
DEFAULT_MAX_PENDING = 64

_logger = logging.getLogger(__name__)


class MealObserver(Protocol):
    """Push channel that receives materialized meal views."""

    async def send_json(self, data: Any) -> None:
        """Deliver a JSON-serializable message."""


@dataclass(eq=False)
class _Subscription:
    observer: MealObserver
    pending: deque[dict[str, Any]] = field(default_factory=deque)
    sender: asyncio.Task[None] | None = None


@dataclass
class ChangeBroadcaster:
    """Best-effort publisher of meal views to every subscriber.

    Publishing never waits for delivery. Each observer has its own backlog
    drained in order by a sender task, so a slow observer only delays itself.
    An observer whose backlog exceeds ``max_pending`` or whose send fails is
    dropped. Observers are tracked by identity.
    """

    max_pending: int = DEFAULT_MAX_PENDING
    _subscriptions: dict[int, _Subscription] = field(default_factory=dict)

    @property
    def observer_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, observer: MealObserver) -> None:
        """Register an observer for future updates."""
        self._subscriptions.setdefault(id(observer), _Subscription(observer))

    def unsubscribe(self, observer: MealObserver) -> None:
        """Stop delivering updates to an observer."""
        subscription = self._subscriptions.pop(id(observer), None)
        if subscription is not None and subscription.sender is not None:
            subscription.sender.cancel()

    def publish(self, view: MealView) -> None:
        """Queue a view for every observer without waiting for delivery."""
        message = {"event": MEAL_UPDATED_EVENT, "data": jsonable_encoder(view)}
        for subscription in list(self._subscriptions.values()):
            if len(subscription.pending) >= self.max_pending:
                _logger.warning(
                    "Dropping observer with %s undelivered updates",
                    len(subscription.pending),
                )
                self.unsubscribe(subscription.observer)
                continue
            subscription.pending.append(message)
            if subscription.sender is None or subscription.sender.done():
                subscription.sender = asyncio.create_task(self._deliver(subscription))

    async def flush(self, timeout: float | None = None) -> None:
        """Wait until queued updates are delivered or the timeout passes."""
        senders = [
            subscription.sender
            for subscription in self._subscriptions.values()
            if subscription.sender is not None and not subscription.sender.done()
        ]
        if senders:
            await asyncio.wait(senders, timeout=timeout)

    def close(self) -> None:
        """Drop every observer and stop pending deliveries."""
        for subscription in list(self._subscriptions.values()):
            self.unsubscribe(subscription.observer)

    async def _deliver(self, subscription: _Subscription) -> None:
        while subscription.pending:
            message = subscription.pending.popleft()
            try:
                await subscription.observer.send_json(message)
            except Exception as exc:
                _logger.warning("Dropping observer after failed delivery: %s", exc)
                key = id(subscription.observer)
                if self._subscriptions.get(key) is subscription:
                    del self._subscriptions[key]
                return
