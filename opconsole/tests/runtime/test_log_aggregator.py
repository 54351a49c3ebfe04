from __future__ import annotations

import threading
from datetime import datetime, timedelta

import pytest

from opconsole.runtime.log_aggregator import (
    Category,
    LogAggregator,
    LogEntry,
    classify,
)


class StepClock:
    """Returns the queued datetimes in order, then repeats the last one."""
    def __init__(self, *times: datetime):
        self._times = list(times)
        self._last = times[-1]

    def __call__(self) -> datetime:
        if self._times:
            self._last = self._times.pop(0)
        return self._last


T0 = datetime(2024, 1, 1, 12, 0, 0)


def _entry(msg: str) -> LogEntry:
    return LogEntry(timestamp=T0, message=msg)


def test_append_preserves_arrival_order():
    agg = LogAggregator()
    for msg in ["b", "a", "a", "c"]:
        agg.append(msg)

    assert agg.messages() == ["b", "a", "a", "c"]  # no reordering, no dedup
    assert len(agg) == 4


def test_timestamps_never_decrease_when_clock_steps_back():
    clock = StepClock(T0, T0 + timedelta(seconds=5), T0 + timedelta(seconds=1), T0 + timedelta(seconds=7))
    agg = LogAggregator(clock=clock)
    for i in range(4):
        agg.append(str(i))

    stamps = [e.timestamp for e in agg.entries()]
    assert stamps == sorted(stamps)
    assert stamps[2] == T0 + timedelta(seconds=5)
    assert stamps[3] == T0 + timedelta(seconds=7)


def test_append_returns_entry_with_time_label():
    agg = LogAggregator(clock=lambda: datetime(2024, 1, 1, 9, 5, 7))
    e = agg.append("hello")
    assert e.message == "hello"
    assert e.time_label == "09:05:07"
    assert e.render() == "[09:05:07] hello"


def test_reset_clears_sequence():
    agg = LogAggregator()
    agg.append("old")
    agg.reset()
    assert agg.entries() == []
    agg.append("new")
    assert agg.messages() == ["new"]


def test_entries_returns_a_copy():
    agg = LogAggregator()
    agg.append("x")
    snap = agg.entries()
    snap.clear()
    assert len(agg) == 1


def test_entries_since_cursor():
    agg = LogAggregator()
    agg.append("a")
    cur = agg.cursor
    agg.append("b")
    agg.append("c")

    new, cur2 = agg.entries_since(cur)
    assert [e.message for e in new] == ["b", "c"]

    none, cur3 = agg.entries_since(cur2)
    assert none == []
    assert cur3 == cur2


def test_entries_since_stale_cursor_after_reset_returns_whole_session():
    agg = LogAggregator()
    agg.append("a")
    agg.append("b")
    stale = agg.cursor

    agg.reset()
    agg.append("x")
    agg.append("y")
    agg.append("z")

    new, _ = agg.entries_since(stale)
    assert [e.message for e in new] == ["x", "y", "z"]


def test_subscribe_and_unsubscribe():
    agg = LogAggregator()
    seen = []
    unsub = agg.subscribe(lambda e: seen.append(e.message))

    agg.append("one")
    unsub()
    agg.append("two")

    assert seen == ["one"]


def test_listener_error_does_not_break_append():
    agg = LogAggregator()

    def bad(_e):
        raise RuntimeError("boom")

    agg.subscribe(bad)
    agg.append("still stored")
    assert agg.messages() == ["still stored"]


def test_concurrent_appends_are_all_kept():
    agg = LogAggregator()

    def writer(prefix: str):
        for i in range(200):
            agg.append(f"{prefix}{i}")

    threads = [threading.Thread(target=writer, args=(p,)) for p in "abcd"]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    msgs = agg.messages()
    assert len(msgs) == 800
    # per-writer order is preserved
    for p in "abcd":
        mine = [m for m in msgs if m.startswith(p)]
        assert mine == [f"{p}{i}" for i in range(200)]


@pytest.mark.parametrize(
    "message, expected",
    [
        ("[ERR]: Cannot reach control endpoint", Category.ERROR),
        ("[CMD]: say hi", Category.COMMAND),
        ("[INFO]: Connecting...", Category.INFO),
        ("[OK]: started", Category.DATA),
        ("plain frame from the process", Category.DATA),
        ("", Category.DATA),
    ],
)
def test_classify_markers(message, expected):
    assert classify(_entry(message)) is expected


def test_classify_precedence_error_over_command_over_info():
    assert classify(_entry("[INFO]: x [CMD]: y [ERR]: z")) is Category.ERROR
    assert classify(_entry("[INFO]: x [CMD]: y")) is Category.COMMAND
    assert classify(_entry("frame mentioning [INFO]: inside")) is Category.INFO


def test_classify_is_pure():
    e = _entry("[CMD]: list")
    assert classify(e) is classify(e)
    assert e.message == "[CMD]: list"


def test_listener_is_called_outside_the_log_lock():
    agg = LogAggregator()
    seen = []

    def listener(entry):
        t = threading.Thread(target=lambda: seen.append(len(agg)))
        t.start()
        t.join(timeout=2)

    agg.subscribe(listener)
    agg.append("a")
    agg.append("b")

    assert seen == [1, 2]
