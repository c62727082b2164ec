"""In-process publish/subscribe for watcher events."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set

from loguru import logger

FILE_CHANGED = "file_changed"

Listener = Callable[[Any], None]


@dataclass(frozen=True, eq=False)
class Subscription:
    """Handle returned by ``subscribe``; each one is an independent registration."""

    bus: "EventBus"
    topic: str
    listener: Listener

    def unsubscribe(self) -> None:
        self.bus.unsubscribe(self)


class EventBus:
    """Maps a topic to a set of subscriptions.

    Delivery is synchronous. A listener that raises is logged and does not
    prevent delivery to the remaining listeners.
    """

    def __init__(self):
        self._subscriptions: Dict[str, Set[Subscription]] = {}

    def subscribe(self, topic: str, listener: Listener) -> Subscription:
        subscription = Subscription(self, topic, listener)
        self._subscriptions.setdefault(subscription.topic, set()).add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.topic)
        if subscriptions is None:
            return
        subscriptions.discard(subscription)
        if not subscriptions:
            del self._subscriptions[subscription.topic]

    def publish(self, topic: str, event: Any) -> int:
        """Deliver an event to every listener of a topic.

        Returns:
            Number of listeners that handled the event without raising
        """
        delivered = 0
        # Copy so listeners may unsubscribe while being notified
        for subscription in list(self._subscriptions.get(topic, ())):
            try:
                subscription.listener(event)
                delivered += 1
            except Exception as e:
                logger.exception(f"Error in {topic} listener: {e}")
        return delivered

    def listener_count(self, topic: str) -> int:
        return len(self._subscriptions.get(topic, ()))

    def remove_all_listeners(self, topic: Optional[str] = None) -> None:
        if topic is None:
            self._subscriptions.clear()
        else:
            self._subscriptions.pop(topic, None)
