"""Tests for events.py: replay-latest snapshot streams."""

from rssfeed_reader.events import SnapshotStream


def test_subscribe_replays_latest_value():
    stream = SnapshotStream((), name="items")
    stream.publish(("a",))
    received = []

    stream.subscribe(received.append)

    assert received == [("a",)]


def test_publish_notifies_all_subscribers():
    stream = SnapshotStream(0)
    first, second = [], []
    stream.subscribe(first.append)
    stream.subscribe(second.append)

    stream.publish(1)
    stream.publish(2)

    assert first == [0, 1, 2]
    assert second == [0, 1, 2]
    assert stream.value == 2


def test_unsubscribe_stops_delivery():
    stream = SnapshotStream(0)
    received = []
    unsubscribe = stream.subscribe(received.append)

    unsubscribe()
    stream.publish(1)

    assert received == [0]


def test_failing_subscriber_does_not_block_others(caplog):
    stream = SnapshotStream(0, name="feeds")
    received = []

    def broken(_value):
        raise RuntimeError("boom")

    stream.subscribe(broken)
    stream.subscribe(received.append)
    stream.publish(1)

    assert received == [0, 1]
    assert "Subscriber of 'feeds' failed" in caplog.text
