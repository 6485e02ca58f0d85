"""
Dual chess clock: a small state machine driven by a fixed-cadence tick.

States:

    UNINITIALIZED --initialize--> IDLE --start/resume--> RUNNING
    RUNNING --pause--> IDLE
    RUNNING --switch_active--> RUNNING (other side)
    RUNNING --tick reaches 0--> EXPIRED
    any --initialize/reset--> IDLE

Only the active side's clock runs, and only while the state is RUNNING.
Time is held in integer milliseconds and clamped at zero. Expiry is reported
once to every registered timeout observer. Under the "unlimited" preset the
clock never runs: start() and switch_active() are no-ops.

Misuse (starting an expired clock, switching with no active side) is a
silent no-op logged at debug level, never an exception. An invalid side
name raises ValueError from the Side enum; that is a programming error.

The state machine itself is synchronous and has no notion of real time.
tick() is called by a driver: the asyncio task in run(), or a test calling
tick() directly to simulate elapsed time.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Callable

from talchess.constants import (
    CRITICAL_TIME_SECONDS,
    LOW_TIME_SECONDS,
    TENTHS_DISPLAY_SECONDS,
    TICK_INTERVAL_MS,
)

_log = logging.getLogger(__name__)


class Side(str, Enum):
    PLAYER = "player"
    OPPONENT = "opponent"

    @property
    def other(self) -> "Side":
        return Side.OPPONENT if self is Side.PLAYER else Side.PLAYER


class ClockStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    IDLE = "idle"
    RUNNING = "running"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TimeControl:
    key: str
    name: str
    seconds: int | None      # None means unlimited
    increment: int = 0
    description: str = ""

    @property
    def unlimited(self) -> bool:
        return self.seconds is None


DEFAULT_TIME_CONTROL = "rapid"

TIME_CONTROLS = MappingProxyType({
    tc.key: tc
    for tc in (
        TimeControl("bullet", "Bullet", 180, 0, "3 min"),
        TimeControl("blitz", "Blitz", 300, 0, "5 min"),
        TimeControl("rapid", "Rapid", 600, 0, "10 min"),
        TimeControl("classical", "Classical", 900, 10, "15+10"),
        TimeControl("unlimited", "Unlimited", None, 0, "No limit"),
    )
})


@dataclass(frozen=True)
class ClockState:
    """Immutable snapshot of the clock. Times are None when unlimited."""

    player_ms: int | None
    opponent_ms: int | None
    increment_ms: int
    active_side: Side | None
    status: ClockStatus

    @property
    def paused(self) -> bool:
        return self.status is not ClockStatus.RUNNING

    @property
    def player_seconds(self) -> float | None:
        return None if self.player_ms is None else self.player_ms / 1000

    @property
    def opponent_seconds(self) -> float | None:
        return None if self.opponent_ms is None else self.opponent_ms / 1000


@dataclass(frozen=True)
class TimerDisplay:
    """What a timer widget needs: the text and its styling flags."""

    text: str
    active: bool
    low: bool
    critical: bool


def format_time(seconds: float | None) -> str:
    """
    Format remaining time for display.

    "m:ss" normally, "m:ss.s" under 20 seconds, "0:00" when flagged and
    "∞" for an unlimited clock.
    """
    if seconds is None:
        return "∞"
    if seconds <= 0:
        return "0:00"
    minutes = int(seconds // 60)
    secs = seconds % 60
    if seconds < TENTHS_DISPLAY_SECONDS:
        return f"{minutes}:{secs:04.1f}"
    return f"{minutes}:{int(secs):02d}"


TimeoutCallback = Callable[[Side], object]
TickCallback = Callable[[float | None, float | None, Side | None], object]


def _unsubscriber(callbacks: list, callback: Callable) -> Callable[[], None]:
    def unsubscribe() -> None:
        if callback in callbacks:
            callbacks.remove(callback)
    return unsubscribe


class ClockStateMachine:
    """
    Player-versus-opponent chess clock.

    Args:
        time_control:     Optional preset key; when given the clock is
                          initialized immediately.
        tick_interval_ms: Amount of time one tick() removes from the
                          active side. Also the cadence of run().
    """

    def __init__(
        self,
        time_control: str | None = None,
        tick_interval_ms: int = TICK_INTERVAL_MS,
    ) -> None:
        self.tick_interval_ms = tick_interval_ms
        self.status = ClockStatus.UNINITIALIZED
        self.time_control: TimeControl | None = None
        self.increment_ms = 0
        self.active_side: Side | None = None
        self._remaining: dict[Side, int | None] = {Side.PLAYER: None, Side.OPPONENT: None}
        self._timeout_callbacks: list[TimeoutCallback] = []
        self._tick_callbacks: list[TickCallback] = []
        if time_control is not None:
            self.initialize(time_control)

    # -----------------------------------------------------------------------
    # Observers
    # -----------------------------------------------------------------------

    def on_timeout(self, callback: TimeoutCallback) -> Callable[[], None]:
        """Register callback(losing_side). Returns an unsubscribe function."""
        self._timeout_callbacks.append(callback)
        return _unsubscriber(self._timeout_callbacks, callback)

    def on_tick(self, callback: TickCallback) -> Callable[[], None]:
        """Register callback(player_s, opponent_s, active_side) for every tick."""
        self._tick_callbacks.append(callback)
        return _unsubscriber(self._tick_callbacks, callback)

    # -----------------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------------

    @property
    def unlimited(self) -> bool:
        return self.time_control is not None and self.time_control.unlimited

    @property
    def paused(self) -> bool:
        return self.status is not ClockStatus.RUNNING

    def initialize(self, key: str) -> None:
        """Load a preset (unknown keys fall back to rapid) and go idle."""
        control = TIME_CONTROLS.get(key)
        if control is None:
            _log.debug("unknown time control %r, using %s", key, DEFAULT_TIME_CONTROL)
            control = TIME_CONTROLS[DEFAULT_TIME_CONTROL]
        self.time_control = control
        start_ms = None if control.seconds is None else control.seconds * 1000
        self._remaining = {Side.PLAYER: start_ms, Side.OPPONENT: start_ms}
        self.increment_ms = control.increment * 1000
        self.active_side = None
        self.status = ClockStatus.IDLE
        _log.info("clock initialized: %s (%s)", control.name, control.description)

    def reset(self) -> None:
        """Re-initialize with the current time control."""
        if self.time_control is None:
            return
        self.initialize(self.time_control.key)

    def start(self, side: Side | str) -> None:
        """Start (or restart) running `side`'s clock."""
        side = Side(side)
        if self.unlimited:
            return
        if self.status in (ClockStatus.UNINITIALIZED, ClockStatus.EXPIRED):
            _log.debug("start(%s) ignored in state %s", side.value, self.status.value)
            return
        self.active_side = side
        self.status = ClockStatus.RUNNING

    def pause(self) -> None:
        if self.status is ClockStatus.RUNNING:
            self.status = ClockStatus.IDLE

    def resume(self) -> None:
        if self.status is ClockStatus.IDLE and self.active_side is not None and not self.unlimited:
            self.status = ClockStatus.RUNNING

    def switch_active(self) -> None:
        """
        Hand the move to the other side.

        The side that just moved receives the increment. Works while paused
        so a move made during a pause still changes whose clock resumes.
        """
        if self.unlimited or self.active_side is None:
            _log.debug("switch_active ignored (no active side or unlimited)")
            return
        if self.status is ClockStatus.EXPIRED:
            return
        mover = self.active_side
        self._remaining[mover] += self.increment_ms
        self.active_side = mover.other

    def tick(self) -> None:
        """
        Remove one tick interval from the active side.

        On reaching zero the clock clamps to 0, expires, and notifies the
        timeout observers with the losing side. Otherwise tick observers
        receive both remaining times in seconds and the active side.
        """
        if self.status is not ClockStatus.RUNNING:
            return
        side = self.active_side
        remaining = self._remaining[side] - self.tick_interval_ms
        if remaining <= 0:
            self._remaining[side] = 0
            self.status = ClockStatus.EXPIRED
            _log.info("%s ran out of time", side.value)
            for callback in list(self._timeout_callbacks):
                callback(side)
            return
        self._remaining[side] = remaining
        for callback in list(self._tick_callbacks):
            callback(self.remaining(Side.PLAYER), self.remaining(Side.OPPONENT), side)

    # -----------------------------------------------------------------------
    # Reading the clock
    # -----------------------------------------------------------------------

    def remaining(self, side: Side | str) -> float | None:
        """Remaining seconds for `side`, or None when unlimited/uninitialized."""
        ms = self._remaining[Side(side)]
        return None if ms is None else ms / 1000

    def snapshot(self) -> ClockState:
        return ClockState(
            player_ms=self._remaining[Side.PLAYER],
            opponent_ms=self._remaining[Side.OPPONENT],
            increment_ms=self.increment_ms,
            active_side=self.active_side,
            status=self.status,
        )

    def display(self, side: Side | str) -> TimerDisplay:
        """Formatted time plus active/low/critical styling for one side."""
        side = Side(side)
        seconds = self.remaining(side)
        if self.unlimited or seconds is None:
            return TimerDisplay(format_time(None), False, False, False)
        return TimerDisplay(
            text=format_time(seconds),
            active=side is self.active_side,
            low=CRITICAL_TIME_SECONDS < seconds <= LOW_TIME_SECONDS,
            critical=seconds <= CRITICAL_TIME_SECONDS,
        )

    # -----------------------------------------------------------------------
    # Real-time driver
    # -----------------------------------------------------------------------

    async def run(self) -> None:
        """
        Tick on a fixed real-time cadence until the clock expires.

        Deadlines are computed from the loop clock rather than by chaining
        sleeps, so scheduling jitter does not accumulate into lost time.
        Cancel the task to stop the driver early.
        """
        loop = asyncio.get_running_loop()
        interval = self.tick_interval_ms / 1000
        deadline = loop.time() + interval
        while self.status is not ClockStatus.EXPIRED:
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            deadline += interval
            self.tick()
