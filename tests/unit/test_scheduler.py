"""Tests for retrace.history.scheduler: timers and the Debouncer."""

from __future__ import annotations

import asyncio
import threading

import pytest

from retrace.core.clock import SimClock
from retrace.history.scheduler import (
    AsyncioScheduler,
    Debouncer,
    ManualScheduler,
    Scheduler,
    ThreadScheduler,
    create_scheduler,
)


# ---------------------------------------------------------------------------
# ManualScheduler
# ---------------------------------------------------------------------------


class TestManualScheduler:
    def test_satisfies_protocol(self):
        assert isinstance(ManualScheduler(), Scheduler)

    def test_fires_at_deadline(self, manual_scheduler):
        fired = []
        manual_scheduler.call_later(0.2, lambda: fired.append(manual_scheduler.clock.elapsed()))
        manual_scheduler.advance(0.1)
        assert fired == []
        manual_scheduler.advance(0.1)
        assert fired == [pytest.approx(0.2)]

    def test_clock_set_to_deadline_during_callback(self, sim_clock):
        s = ManualScheduler(sim_clock)
        seen = []
        s.call_later(0.3, lambda: seen.append(sim_clock.elapsed()))
        s.advance(1.0)
        assert seen == [pytest.approx(0.3)]
        assert sim_clock.elapsed() == pytest.approx(1.0)

    def test_fires_in_deadline_order(self, manual_scheduler):
        order = []
        manual_scheduler.call_later(0.5, lambda: order.append("late"))
        manual_scheduler.call_later(0.1, lambda: order.append("early"))
        assert manual_scheduler.advance(1.0) == 2
        assert order == ["early", "late"]

    def test_same_deadline_keeps_submission_order(self, manual_scheduler):
        order = []
        manual_scheduler.call_later(0.1, lambda: order.append(1))
        manual_scheduler.call_later(0.1, lambda: order.append(2))
        manual_scheduler.advance(0.1)
        assert order == [1, 2]

    def test_cancelled_timer_does_not_fire(self, manual_scheduler):
        fired = []
        handle = manual_scheduler.call_later(0.1, lambda: fired.append(1))
        handle.cancel()
        assert handle.cancelled
        assert manual_scheduler.advance(1.0) == 0
        assert fired == []

    def test_pending_count(self, manual_scheduler):
        h = manual_scheduler.call_later(0.1, lambda: None)
        manual_scheduler.call_later(0.2, lambda: None)
        assert manual_scheduler.pending_count == 2
        h.cancel()
        assert manual_scheduler.pending_count == 1

    def test_callback_scheduling_within_window(self, manual_scheduler):
        fired = []

        def first():
            fired.append("first")
            manual_scheduler.call_later(0.1, lambda: fired.append("second"))

        manual_scheduler.call_later(0.1, first)
        manual_scheduler.advance(0.5)
        assert fired == ["first", "second"]

    def test_negative_advance(self, manual_scheduler):
        with pytest.raises(ValueError):
            manual_scheduler.advance(-1.0)

    def test_owns_clock_by_default(self):
        s = ManualScheduler()
        assert isinstance(s.clock, SimClock)


# ---------------------------------------------------------------------------
# ThreadScheduler / AsyncioScheduler
# ---------------------------------------------------------------------------


class TestThreadScheduler:
    def test_fires(self):
        done = threading.Event()
        ThreadScheduler().call_later(0.01, done.set)
        assert done.wait(timeout=2.0)

    def test_cancel(self):
        done = threading.Event()
        handle = ThreadScheduler().call_later(0.2, done.set)
        handle.cancel()
        assert handle.cancelled
        assert not done.wait(timeout=0.4)


class TestAsyncioScheduler:
    @pytest.mark.asyncio
    async def test_fires_on_running_loop(self):
        fired = asyncio.Event()
        AsyncioScheduler().call_later(0.01, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=2.0)

    @pytest.mark.asyncio
    async def test_cancel(self):
        fired = []
        handle = AsyncioScheduler(asyncio.get_running_loop()).call_later(
            0.01, lambda: fired.append(1)
        )
        handle.cancel()
        assert handle.cancelled
        await asyncio.sleep(0.05)
        assert fired == []

    def test_no_running_loop(self):
        with pytest.raises(RuntimeError):
            AsyncioScheduler().call_later(0.01, lambda: None)


class TestCreateScheduler:
    def test_backends(self):
        assert isinstance(create_scheduler("thread"), ThreadScheduler)
        assert isinstance(create_scheduler("asyncio"), AsyncioScheduler)
        assert isinstance(create_scheduler("manual"), ManualScheduler)

    def test_manual_uses_given_clock(self, sim_clock):
        assert create_scheduler("manual", clock=sim_clock).clock is sim_clock

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown scheduler backend"):
            create_scheduler("cron")


# ---------------------------------------------------------------------------
# Debouncer
# ---------------------------------------------------------------------------


class TestDebouncer:
    def test_rejects_non_positive_delay(self, manual_scheduler):
        with pytest.raises(ValueError):
            Debouncer(manual_scheduler, 0.0, lambda v: None)

    def test_delivers_after_quiet_period(self, manual_scheduler):
        got = []
        d = Debouncer(manual_scheduler, 0.2, got.append)
        d.submit(1)
        assert d.pending
        manual_scheduler.advance(0.1)
        assert got == []
        manual_scheduler.advance(0.1)
        assert got == [1]
        assert not d.pending

    def test_burst_delivers_last_value_only(self, manual_scheduler):
        got = []
        d = Debouncer(manual_scheduler, 0.2, got.append)
        for v in (1, 2, 3, 4):
            d.submit(v)
            manual_scheduler.advance(0.05)
        manual_scheduler.advance(1.0)
        assert got == [4]

    def test_cancel(self, manual_scheduler):
        got = []
        d = Debouncer(manual_scheduler, 0.1, got.append)
        d.submit(1)
        assert d.cancel() is True
        manual_scheduler.advance(1.0)
        assert got == []
        assert d.cancel() is False

    def test_flush(self, manual_scheduler):
        got = []
        d = Debouncer(manual_scheduler, 0.1, got.append)
        d.submit("x")
        assert d.flush() is True
        assert got == ["x"]
        manual_scheduler.advance(1.0)
        assert got == ["x"]

    def test_flush_nothing_pending(self, manual_scheduler):
        d = Debouncer(manual_scheduler, 0.1, lambda v: None)
        assert d.flush() is False

    def test_callback_error_is_logged(self, manual_scheduler, caplog):
        def boom(value):
            raise RuntimeError("bad")

        d = Debouncer(manual_scheduler, 0.1, boom)
        d.submit(1)
        manual_scheduler.advance(0.2)
        assert "Debounced callback failed" in caplog.text

    def test_with_thread_scheduler(self):
        got = []
        done = threading.Event()

        def deliver(value):
            got.append(value)
            done.set()

        d = Debouncer(ThreadScheduler(), 0.05, deliver)
        d.submit(1)
        d.submit(2)
        assert done.wait(timeout=2.0)
        assert got == [2]
