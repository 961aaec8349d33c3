"""Tests for the metrics recorder using a frozen clock."""

import pytest

from metrics import MetricsRecorder


def test_rate_is_zero_when_log_empty(fake_clock):
    rec = MetricsRecorder(clock=fake_clock)
    assert rec.messages_per_second() == 0.0
    assert rec.messages_per_second(1) == 0.0


@pytest.mark.parametrize("k,window", [(1, 5), (10, 5), (7, 2), (25, 1)])
def test_rate_is_k_over_window_without_elapsed_time(fake_clock, k, window):
    rec = MetricsRecorder(clock=fake_clock)
    for _ in range(k):
        rec.record_message()
    assert rec.messages_per_second(window) == pytest.approx(k / window)


def test_stale_entries_fall_out_of_window(fake_clock):
    rec = MetricsRecorder(window_seconds=5, clock=fake_clock)
    for _ in range(4):
        rec.record_message()
    fake_clock.advance(3)
    rec.record_message()
    assert rec.messages_per_second() == pytest.approx(5 / 5)
    fake_clock.advance(2.5)
    assert rec.messages_per_second() == pytest.approx(1 / 5)
    fake_clock.advance(10)
    assert rec.messages_per_second() == 0.0


def test_log_is_bounded_with_fifo_eviction(fake_clock):
    capacity = 10
    rec = MetricsRecorder(capacity=capacity, clock=fake_clock)
    for _ in range(2 * capacity):
        rec.record_message()
        fake_clock.advance(1)
    assert len(rec.timestamps) == capacity
    # The first C timestamps (1000..1009) were evicted; the newest C remain.
    assert rec.timestamps == tuple(1000.0 + i for i in range(capacity, 2 * capacity))
    assert rec.total_messages_sent == 2 * capacity


def test_snapshot_fields(fake_clock):
    rec = MetricsRecorder(window_seconds=5, clock=fake_clock)
    rec.add_connection()
    rec.add_connection()
    for _ in range(8):
        rec.record_message()
    fake_clock.advance(3.7)
    snap = rec.snapshot()
    assert snap.connections == 2
    assert snap.total_messages_sent == 8
    assert snap.messages_per_second == 1.6
    assert snap.throughput == 1
    assert snap.uptime == 3
    assert set(snap.to_wire()) == {"connections", "totalMessagesSent", "messagesPerSecond", "throughput", "uptime"}


def test_reset_keeps_connections(fake_clock):
    rec = MetricsRecorder(clock=fake_clock)
    rec.add_connection()
    rec.record_message()
    rec.reset()
    assert rec.connections == 1
    assert rec.total_messages_sent == 0
    assert rec.timestamps == ()
    assert rec.messages_per_second() == 0.0


def test_unmatched_remove_is_ignored(fake_clock):
    rec = MetricsRecorder(clock=fake_clock)
    rec.remove_connection()
    assert rec.connections == 0
    rec.add_connection()
    rec.remove_connection()
    rec.remove_connection()
    assert rec.connections == 0


def test_invalid_construction():
    with pytest.raises(ValueError):
        MetricsRecorder(capacity=0)
    with pytest.raises(ValueError):
        MetricsRecorder(window_seconds=0)
