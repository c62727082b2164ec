"""Tests for the in-process event bus."""

from kanban_sync.sync.classifier import WatchEventType
from kanban_sync.sync.event_bus import FILE_CHANGED, EventBus


def test_publish_reaches_every_listener():
    bus = EventBus()
    seen = []
    bus.subscribe("boardAdded", lambda event: seen.append(("first", event)))
    bus.subscribe("boardAdded", lambda event: seen.append(("second", event)))

    delivered = bus.publish("boardAdded", "payload")

    assert delivered == 2
    assert sorted(seen) == [("first", "payload"), ("second", "payload")]


def test_publish_without_listeners_is_noop():
    assert EventBus().publish(FILE_CHANGED, object()) == 0


def test_failing_listener_does_not_block_others():
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe("itemAdded", broken)
    bus.subscribe("itemAdded", seen.append)

    delivered = bus.publish("itemAdded", 1)

    assert seen == [1]
    assert delivered == 1


def test_same_callable_subscribed_twice_is_two_registrations():
    bus = EventBus()
    seen = []

    first = bus.subscribe("x", seen.append)
    bus.subscribe("x", seen.append)
    bus.publish("x", 1)
    first.unsubscribe()
    bus.publish("x", 2)

    assert seen == [1, 1, 2]


def test_unsubscribe_stops_delivery():
    bus = EventBus()
    seen = []
    subscription = bus.subscribe("x", seen.append)

    subscription.unsubscribe()
    bus.publish("x", 1)

    assert seen == []
    assert bus.listener_count("x") == 0


def test_listener_may_unsubscribe_during_publish():
    bus = EventBus()
    seen = []
    holder = {}

    def once(event):
        seen.append(event)
        holder["subscription"].unsubscribe()

    holder["subscription"] = bus.subscribe("x", once)
    bus.publish("x", 1)
    bus.publish("x", 2)

    assert seen == [1]


def test_enum_topics_match_string_topics():
    bus = EventBus()
    seen = []
    bus.subscribe("itemChanged", seen.append)

    bus.publish(WatchEventType.ITEM_CHANGED, "event")

    assert seen == ["event"]


def test_remove_all_listeners():
    bus = EventBus()
    bus.subscribe("a", print)
    bus.subscribe("b", print)

    bus.remove_all_listeners("a")
    assert bus.listener_count("a") == 0
    assert bus.listener_count("b") == 1

    bus.remove_all_listeners()
    assert bus.listener_count("b") == 0
