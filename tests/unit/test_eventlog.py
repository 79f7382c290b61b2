"""Event log ring behaviour."""

import logging

from churnctrl.eventlog import EventLog


def test_keeps_five_most_recent():
    log = EventLog()
    for i in range(1, 7):
        log.record(f"event {i}")

    messages = [e.message for e in log.entries()]
    assert len(log) == 5
    assert messages == ["event 2", "event 3", "event 4", "event 5", "event 6"]
    assert log.last.message == "event 6"


def test_str_has_timestamp_prefix():
    event = EventLog().record("Connected")
    text = str(event)
    assert text.startswith("[")
    assert text.endswith("] Connected")


def test_listeners_and_logging(caplog):
    log = EventLog(capacity=2)
    assert log.capacity == 2
    received = []
    log.subscribe(received.append)

    with caplog.at_level(logging.INFO, logger="churnctrl.eventlog"):
        log.record("one")
        log.record("two", logging.WARNING)

    assert [e.message for e in received] == ["one", "two"]
    assert "two" in caplog.text

    log.unsubscribe(received.append)
    log.record("three")
    assert len(received) == 2


def test_failing_listener_does_not_break_recording():
    log = EventLog()

    def broken(event):
        raise RuntimeError("boom")

    log.subscribe(broken)
    log.record("still stored")
    assert log.last.message == "still stored"
