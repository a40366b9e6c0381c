"""Tests for the injectable clocks."""

from datetime import UTC, datetime, timedelta

from escrow_kernel.domain.clock import DeterministicClock, SystemClock


class TestDeterministicClock:
    def test_fixed_until_advanced(self):
        start = datetime(2025, 6, 1, tzinfo=UTC)
        clock = DeterministicClock(start)
        assert clock.now() == start
        assert clock.now() == start

    def test_advance_and_tick(self):
        start = datetime(2025, 6, 1, tzinfo=UTC)
        clock = DeterministicClock(start)
        clock.advance(60)
        assert clock.now() == start + timedelta(seconds=60)
        assert clock.tick() == start + timedelta(seconds=61)

    def test_set_time_resets_advance(self):
        clock = DeterministicClock()
        clock.advance(100)
        target = datetime(2030, 1, 1, tzinfo=UTC)
        clock.set_time(target)
        assert clock.now() == target


class TestSystemClock:
    def test_is_timezone_aware(self):
        now = SystemClock().now()
        assert now.tzinfo is not None
        assert SystemClock().now_utc().utcoffset() == timedelta(0)
