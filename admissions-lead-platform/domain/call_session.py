"""
Domain: Call session controller.

A call session is the single, per-actor slot tracking engagement time for one lead:

    Idle -> Active(lead, started_at, elapsed) -> Idle (elapsed retained)

Rules:
- elapsed grows by one per tick while the session is active. Ticks come from an
  injected Ticker (a one-second timer in production, manual ticks in tests).
- Ending a call stops the ticker but keeps elapsed usable for classification until
  a new call starts or the session is consumed.
- Starting a call always resets the slot, so time spent on a previous lead can never
  be attributed to the next one.
- teardown() releases the ticker on every exit path (disconnect, navigation away).

The telephony action itself is fire-and-forget, so elapsed wall-clock time is the
only measure of engagement available.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol

from .errors import WorkflowValidationError
from .time import require_utc_timestamp


class Ticker(Protocol):
    def start(self, callback: Callable[[], None]) -> None:
        ...

    def stop(self) -> None:
        ...


@dataclass(frozen=True, slots=True)
class CallSessionSnapshot:
    lead_id: Optional[str]
    started_at: Optional[datetime]
    ended_at: Optional[datetime]
    elapsed_seconds: int
    is_active: bool


@dataclass(frozen=True, slots=True)
class CompletedCall:
    lead_id: str
    started_at: datetime
    ended_at: datetime
    duration_seconds: int


class CallSession:
    def __init__(self, ticker: Optional[Ticker] = None) -> None:
        self._ticker = ticker
        self._lead_id: Optional[str] = None
        self._started_at: Optional[datetime] = None
        self._ended_at: Optional[datetime] = None
        self._elapsed = 0
        self._active = False

    @property
    def lead_id(self) -> Optional[str]:
        return self._lead_id

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed

    @property
    def is_active(self) -> bool:
        return self._active

    def snapshot(self) -> CallSessionSnapshot:
        return CallSessionSnapshot(
            lead_id=self._lead_id,
            started_at=self._started_at,
            ended_at=self._ended_at,
            elapsed_seconds=self._elapsed,
            is_active=self._active,
        )

    def start(self, lead_id: str, started_at: datetime) -> None:
        require_utc_timestamp("started_at", started_at)
        self.teardown()
        self._lead_id = lead_id
        self._started_at = started_at
        self._active = True
        if self._ticker is not None:
            self._ticker.start(self.tick)

    def tick(self, seconds: int = 1) -> None:
        if self._active:
            self._elapsed += seconds

    def end(self, ended_at: datetime) -> CompletedCall:
        require_utc_timestamp("ended_at", ended_at)
        if not self._active or self._lead_id is None or self._started_at is None:
            raise WorkflowValidationError("No call is in progress.")
        self._stop_ticker()
        self._active = False
        self._ended_at = ended_at
        return CompletedCall(
            lead_id=self._lead_id,
            started_at=self._started_at,
            ended_at=ended_at,
            duration_seconds=self._elapsed,
        )

    def require_minimum(self, lead_id: str, minimum_seconds: int) -> int:
        """Return the elapsed seconds for lead_id once the duration gate is met."""

        if self._lead_id != lead_id:
            raise WorkflowValidationError("Start a call with this student before classifying.")
        if self._elapsed < minimum_seconds:
            raise WorkflowValidationError(
                f"Call lasted {self._elapsed}s; at least {minimum_seconds}s of "
                f"conversation is required before classifying."
            )
        return self._elapsed

    def teardown(self) -> None:
        self._stop_ticker()
        self._lead_id = None
        self._started_at = None
        self._ended_at = None
        self._elapsed = 0
        self._active = False

    def _stop_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.stop()
