from __future__ import annotations
import logging

from app.services.events import EventBus, SplitAction, SplitEvent, log_split_event


def test_event_payload():
    event = SplitEvent(split_id=3, action=SplitAction.SETTLE, actor_user_id=2)
    payload = event.to_dict()

    assert payload["split_id"] == 3
    assert payload["action"] == "settle"
    assert payload["actor_user_id"] == 2
    assert "T" in payload["timestamp"]


def test_failing_subscriber_does_not_reach_publisher(caplog):
    seen = []
    bus = EventBus()

    def broken(event):
        raise RuntimeError("push gateway down")

    bus.subscribe(broken)
    bus.subscribe(seen.append)

    with caplog.at_level(logging.ERROR, logger="app.services.events"):
        bus.publish(SplitEvent(1, SplitAction.CREATE, 1))

    assert [e.split_id for e in seen] == [1]
    assert "push gateway down" in caplog.text


async def test_async_subscribers_are_scheduled():
    seen = []
    bus = EventBus()

    async def notify(event):
        seen.append(event.action)

    bus.subscribe(notify)
    bus.publish(SplitEvent(1, SplitAction.CONFIRM, 1))
    await bus.drain()

    assert seen == [SplitAction.CONFIRM]


def test_unsubscribe_and_log_subscriber(caplog):
    seen = []
    bus = EventBus()
    bus.subscribe(seen.append)
    bus.unsubscribe(seen.append)
    bus.subscribe(log_split_event)

    with caplog.at_level(logging.INFO, logger="app.services.events"):
        bus.publish(SplitEvent(9, SplitAction.DECLINE, 4))

    assert seen == []
    assert "split 9: decline by user 4" in caplog.text
