from __future__ import annotations

import threading

from opconsole.runtime.fanout import Fanout


def test_publish_delivers_to_every_subscriber_in_order():
    fan: Fanout[int] = Fanout("TEST")
    a, b = [], []
    fan.subscribe(a.append)
    fan.subscribe(b.append)

    for i in range(3):
        fan.publish(i)

    assert a == [0, 1, 2]
    assert b == [0, 1, 2]


def test_post_waits_for_drain():
    fan: Fanout[str] = Fanout("TEST")
    seen = []
    fan.subscribe(seen.append)

    fan.post("x")
    assert seen == []
    fan.drain()
    assert seen == ["x"]


def test_reentrant_publish_is_delivered_after_current_item():
    fan: Fanout[str] = Fanout("TEST")
    seen = []

    def cb(item):
        seen.append(item)
        if item == "first":
            fan.publish("nested")

    fan.subscribe(cb)
    fan.publish("first")
    fan.publish("last")

    assert seen == ["first", "nested", "last"]


def test_failing_subscriber_does_not_stop_delivery():
    fan: Fanout[int] = Fanout("TEST")
    seen = []

    def boom(_item):
        raise RuntimeError("listener bug")

    fan.subscribe(boom)
    fan.subscribe(seen.append)
    fan.publish(1)
    fan.publish(2)

    assert seen == [1, 2]


def test_unsubscribe():
    fan: Fanout[int] = Fanout("TEST")
    seen = []
    unsub = fan.subscribe(seen.append)
    fan.publish(1)
    unsub()
    unsub()
    fan.publish(2)
    assert seen == [1]


def test_items_posted_during_foreign_drain_are_delivered_by_drainer():
    fan: Fanout[str] = Fanout("TEST")
    seen = []
    entered = threading.Event()
    release = threading.Event()

    def slow(item):
        if item == "slow":
            entered.set()
            release.wait(timeout=2)
        seen.append(item)

    fan.subscribe(slow)
    t = threading.Thread(target=fan.publish, args=("slow",))
    t.start()
    assert entered.wait(timeout=2)

    # another thread is draining: this returns without delivering
    fan.publish("queued")
    assert seen == []

    release.set()
    t.join(timeout=2)
    assert seen == ["slow", "queued"]
