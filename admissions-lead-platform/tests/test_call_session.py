"""
Tests for `domain/call_session.py` and `services/call_timer.py`.

Covers:
- Starting a call resets elapsed time (no carry-over between leads).
- Ending a call stops the ticker but keeps elapsed time.
- teardown() releases the ticker on every path.
- Ticks missed while the event loop was blocked are still counted.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone

import pytest

from domain.call_session import CallSession
from domain.errors import WorkflowValidationError
from services.call_timer import LoopTicker

T0 = datetime(2025, 6, 2, 10, 0, 0, tzinfo=timezone.utc)
T1 = datetime(2025, 6, 2, 10, 1, 0, tzinfo=timezone.utc)


class ManualTicker:
    def __init__(self) -> None:
        self.callback = None
        self.starts = 0
        self.stops = 0

    def start(self, callback) -> None:
        self.callback = callback
        self.starts += 1

    def stop(self) -> None:
        self.callback = None
        self.stops += 1

    @property
    def running(self) -> bool:
        return self.callback is not None

    def tick(self, times: int) -> None:
        for _ in range(times):
            if self.callback is not None:
                self.callback()


def test_elapsed_does_not_carry_over_between_leads() -> None:
    ticker = ManualTicker()
    session = CallSession(ticker)

    session.start("lead-a", T0)
    ticker.tick(15)
    first = session.end(T1)

    session.start("lead-b", T1)
    ticker.tick(5)
    second = session.end(T1)

    assert first.duration_seconds == 15
    assert second.lead_id == "lead-b"
    assert second.duration_seconds == 5


def test_restart_while_active_resets_elapsed() -> None:
    ticker = ManualTicker()
    session = CallSession(ticker)

    session.start("lead-a", T0)
    ticker.tick(12)
    session.start("lead-b", T0)

    assert session.elapsed_seconds == 0
    assert session.lead_id == "lead-b"
    assert session.is_active


def test_end_stops_ticker_and_keeps_elapsed() -> None:
    ticker = ManualTicker()
    session = CallSession(ticker)

    session.start("lead-a", T0)
    ticker.tick(25)
    session.end(T1)
    session.tick()

    assert not ticker.running
    assert not session.is_active
    assert session.elapsed_seconds == 25
    assert session.require_minimum("lead-a", 20) == 25


def test_end_without_call_fails() -> None:
    with pytest.raises(WorkflowValidationError):
        CallSession().end(T0)


def test_require_minimum_checks_lead_and_duration() -> None:
    session = CallSession()
    session.start("lead-a", T0)
    for _ in range(19):
        session.tick()

    with pytest.raises(WorkflowValidationError):
        session.require_minimum("lead-a", 20)
    with pytest.raises(WorkflowValidationError):
        session.require_minimum("lead-b", 10)

    session.tick()
    assert session.require_minimum("lead-a", 20) == 20


def test_teardown_releases_ticker_and_clears_state() -> None:
    ticker = ManualTicker()
    session = CallSession(ticker)
    session.start("lead-a", T0)
    ticker.tick(30)

    session.teardown()

    assert not ticker.running
    assert session.snapshot().lead_id is None
    assert session.elapsed_seconds == 0


def test_start_requires_utc() -> None:
    with pytest.raises(ValueError):
        CallSession().start("lead-a", datetime(2025, 6, 2, 10, 0, 0))


def test_loop_ticker_ticks_on_event_loop() -> None:
    async def run() -> int:
        ticks = []
        ticker = LoopTicker(interval=0.01)
        ticker.start(lambda: ticks.append(1))
        await asyncio.sleep(0.055)
        ticker.stop()
        count = len(ticks)
        await asyncio.sleep(0.03)
        assert len(ticks) == count
        assert not ticker.running
        return count

    assert asyncio.run(run()) >= 2


def test_loop_ticker_counts_ticks_missed_while_loop_blocked() -> None:
    async def run() -> int:
        session = CallSession(LoopTicker(interval=0.05))
        session.start("lead-a", T0)
        # A synchronous store call holding the loop.
        time.sleep(0.32)
        await asyncio.sleep(0.02)
        elapsed = session.elapsed_seconds
        session.teardown()
        return elapsed

    assert asyncio.run(run()) >= 6
