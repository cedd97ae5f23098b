"""Virtual CPU and timer clock."""

import time
from typing import Callable, Optional

from chipax.constants import CPU_FREQUENCY, TIMER_FREQUENCY
from chipax.logging import ConsoleLogger


class ExecutionClock:
    """Turns elapsed wall time into instruction cycles and timer ticks.

    Each call to :meth:`tick` measures the time since the previous call and
    converts it at ``cpu_frequency`` into cycles and, independently, at
    ``timer_frequency`` into timer decrements. Fractions left over are kept
    for the next tick, so a late tick produces a larger budget instead of
    losing cycles.

    ``max_catch_up`` optionally bounds the wall time a single tick may cover.
    Time beyond the bound is dropped and reported as a warning.
    """

    def __init__(
        self,
        cpu_frequency: int = CPU_FREQUENCY,
        timer_frequency: int = TIMER_FREQUENCY,
        max_catch_up: Optional[float] = None,
        time_fn: Callable[[], float] = time.perf_counter,
        logger: Optional[ConsoleLogger] = None,
    ):
        self.cpu_frequency = cpu_frequency
        self.timer_frequency = timer_frequency
        self.max_catch_up = max_catch_up
        self.time_fn = time_fn
        self.logger = logger if logger is not None else ConsoleLogger("chipax.clock", log_level="WARNING")
        self.dropped_cycles = 0
        self._last_time: Optional[float] = None
        self._cycle_credit = 0.0
        self._timer_credit = 0.0

    def reset(self):
        """Restart measuring from now and drop any accumulated fractions."""
        self._last_time = self.time_fn()
        self._cycle_credit = 0.0
        self._timer_credit = 0.0

    def tick(self) -> tuple[int, int]:
        """Return ``(cycles, timer_ticks)`` due since the previous tick.

        The first tick after construction or :meth:`reset` starts the clock
        and returns ``(0, 0)``.
        """
        now = self.time_fn()
        if self._last_time is None:
            self._last_time = now
            return 0, 0

        elapsed = max(now - self._last_time, 0.0)
        self._last_time = now
        if self.max_catch_up is not None and elapsed > self.max_catch_up:
            dropped = int((elapsed - self.max_catch_up) * self.cpu_frequency)
            self.dropped_cycles += dropped
            self.logger.warning(
                f"Tick covered {elapsed:.3f}s, over the {self.max_catch_up:.3f}s catch-up limit; "
                f"dropping {dropped} cycles"
            )
            elapsed = self.max_catch_up

        self._cycle_credit += elapsed * self.cpu_frequency
        self._timer_credit += elapsed * self.timer_frequency

        cycles = int(self._cycle_credit)
        timer_ticks = int(self._timer_credit)
        self._cycle_credit -= cycles
        self._timer_credit -= timer_ticks
        return cycles, timer_ticks
