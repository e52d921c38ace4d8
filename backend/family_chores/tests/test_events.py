"""Tests for the in-process change bus."""

import asyncio
import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from family_chores.events import ChangeBus, ChangeEvent


def test_events_reach_only_subscribers_of_that_family():
    async def run():
        bus = ChangeBus(queue_size=10)
        first = bus.subscribe(1)
        second = bus.subscribe(1)
        other = bus.subscribe(2)
        assert bus.subscriber_count(1) == 2

        bus.publish(ChangeEvent(1, "chore", 7, "approved"))
        for queue in (first, second):
            event = await asyncio.wait_for(queue.get(), timeout=1)
            assert (event.entity, event.entity_id, event.action) == ("chore", 7, "approved")
        assert other.empty()

        bus.unsubscribe(1, first)
        bus.unsubscribe(1, second)
        assert bus.subscriber_count(1) == 0
        bus.publish(ChangeEvent(1, "chore", 8, "created"))
        assert first.empty()

    asyncio.run(run())


def test_full_queue_drops_events_instead_of_blocking():
    async def run():
        bus = ChangeBus(queue_size=1)
        queue = bus.subscribe(3)
        bus.publish(ChangeEvent(3, "ledger", 1, "created"))
        bus.publish(ChangeEvent(3, "ledger", 2, "created"))
        assert queue.qsize() == 1
        assert queue.get_nowait().entity_id == 1

    asyncio.run(run())


def test_event_serializes_to_json_friendly_dict():
    event = ChangeEvent(4, "wishlist_item", 9, "fulfilled")
    data = event.to_dict()
    assert data["family_id"] == 4
    assert data["entity"] == "wishlist_item"
    assert isinstance(data["at"], str)
