"""Emulation driver: run loop, pacing and the hand-off to the front end."""

import dataclasses
import os
import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional

import jax
import jax.numpy as jnp
import numpy as np

from chipax.clock import ExecutionClock
from chipax.config import EmulatorConfig
from chipax.constants import NUM_KEYS, SCREEN_HEIGHT, SCREEN_WIDTH
from chipax.emulator import decay_timers, execute, fetch, run_batch
from chipax.errors import ExecutionError
from chipax.logging import SessionLogger, build_progress_bar
from chipax.rom import read_rom
from chipax.state import EmulatorState, create_state, load_rom

# Cycles per compiled batch in headless runs
BATCH_SIZE = 10_000


def asdict_non_recursive(obj: Any) -> Dict[str, Any]:
    """Convert dataclass to dictionary without recursive conversion."""
    return {field.name: getattr(obj, field.name) for field in dataclasses.fields(obj)}


class Emulator:
    """Owns one CHIP-8 session and paces it against wall-clock time.

    The emulation role (``run`` or the thread started by ``start``) is the
    only writer of the machine state. The presentation role talks to the
    driver through three lock-protected items: the published frame
    (:meth:`frame`), the draw-ready flag (:meth:`consume_draw_flag`) and the
    keypad (:meth:`set_key`). Frames are published between instructions, so a
    reader never sees a partially drawn sprite.

    Example::

        emulator = Emulator.from_file("roms/PONG")
        emulator.start()
        while running:
            if emulator.consume_draw_flag():
                paint(emulator.frame_grid())
        emulator.stop()
        emulator.join()
    """

    def __init__(
        self,
        rom: bytes,
        config: Optional[EmulatorConfig] = None,
        rng: Optional[jax.random.PRNGKey] = None,
        name: str = "<memory>",
        time_fn: Callable[[], float] = time.perf_counter,
        sleep_fn: Callable[[float], None] = time.sleep,
    ):
        """Create a session with ``rom`` loaded at 0x200.

        Raises:
            RomTooLargeError: If the ROM does not fit; nothing is run.
        """
        self.config = config if config is not None else EmulatorConfig()
        self.rom = bytes(rom)
        self.name = name
        self.rng = rng if rng is not None else jax.random.PRNGKey(0)
        self.logger = SessionLogger(log_level=self.config.log_level)
        self.clock = ExecutionClock(
            cpu_frequency=self.config.cpu_frequency,
            timer_frequency=self.config.timer_frequency,
            max_catch_up=self.config.max_catch_up,
            time_fn=time_fn,
            logger=self.logger,
        )
        self._sleep = sleep_fn

        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._keypad = np.zeros(NUM_KEYS, dtype=np.bool_)

        self.state = self._fresh_state()
        self._frame = np.array(self.state.display)
        self._draw_ready = True
        self.cycles = 0
        self.error: Optional[BaseException] = None
        self.logger.info(f"Loaded ROM '{self.name}' ({len(self.rom)} bytes)")

    @classmethod
    def from_file(cls, filename: str, **kwargs) -> "Emulator":
        """Read a ROM file and create a session for it."""
        kwargs.setdefault("name", os.path.basename(filename))
        return cls(read_rom(filename), **kwargs)

    def _fresh_state(self) -> EmulatorState:
        state = create_state(
            self.rng,
            random_mask_register=self.config.random_mask_register,
        )
        return load_rom(state, self.rom, self.name)

    # Emulation role

    def step(self) -> EmulatorState:
        """Run one fetch-decode-execute cycle and return the new state."""
        state = self.state
        instruction = fetch(state)
        if self.logger.is_enabled_for("DEBUG"):
            self.logger.debug(f"pc=0x{int(state.pc):03X} opcode=0x{instruction:04X}")
        self.state = execute(state, instruction)
        self.cycles += 1
        return self.state

    def _run(self, count: int, timer_ratio=(0, 1), phase: int = 0):
        """Run ``count`` cycles, decaying the timers at ``timer_ratio``.

        Cycles run in one compiled batch; with DEBUG logging they run one at a
        time so that each instruction is traced.
        """
        if self.logger.is_enabled_for("DEBUG"):
            numerator, denominator = timer_ratio
            for offset in range(count):
                self.step()
                cycle = phase + offset
                ticks = ((cycle + 1) * numerator) // denominator - (cycle * numerator) // denominator
                self.state = decay_timers(self.state, ticks)
            return
        state, executed, error = run_batch(self.state, count, timer_ratio, phase)
        self.state = state
        self.cycles += executed
        if error is not None:
            raise error

    def tick(self) -> int:
        """Run the cycles due since the last tick, decay timers, publish the frame.

        Returns:
            Number of cycles executed
        """
        cycles, timer_ticks = self.clock.tick()
        self._load_keypad()
        self._run(cycles)
        self.state = decay_timers(self.state, timer_ticks)
        self._publish()
        return cycles

    def run_cycles(self, count: int, progress: bool = False) -> EmulatorState:
        """Run ``count`` cycles as fast as possible.

        Timers decay in proportion to the executed cycles, as they would at
        the configured CPU frequency.
        """
        bar = build_progress_bar(count) if progress else None
        timer_ratio = (self.config.timer_frequency, self.config.cpu_frequency)
        done = 0
        self._load_keypad()
        try:
            while done < count:
                chunk = min(count - done, BATCH_SIZE)
                self._run(chunk, timer_ratio, done)
                done += chunk
                if bar is not None:
                    bar.update(chunk)
        finally:
            if bar is not None:
                bar.close()
            self._publish()
        return self.state

    def run(self):
        """Tick until :meth:`stop` is called or an instruction fails.

        Raises:
            ExecutionError: The fatal error that halted the session.
        """
        self.clock.reset()
        self.logger.log_session_start(self.name, asdict_non_recursive(self.config))
        try:
            while not self._stop_event.is_set():
                self.tick()
                self._sleep(self.config.tick_sleep)
        except ExecutionError as error:
            self.error = error
            self._publish()
            self.logger.log_session_end(self.cycles, error)
            raise
        self.logger.log_session_end(self.cycles)

    def _run_in_thread(self):
        try:
            self.run()
        except ExecutionError:
            pass  # stored by run() and re-raised from join()
        except Exception as error:
            self.error = error
            self.logger.critical(f"Emulation thread crashed: {error!r}")

    def start(self) -> threading.Thread:
        """Run the session on a daemon thread."""
        if self.running:
            raise RuntimeError("Emulator is already running")
        self.error = None
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_in_thread, name="chipax-emulation", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self):
        """Ask the run loop to finish after the current tick."""
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None):
        """Wait for the emulation thread and re-raise the error that stopped it."""
        if self._thread is not None:
            self._thread.join(timeout)
        if self.error is not None:
            raise self.error

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def reset(self):
        """Reload the ROM into a fresh machine state. Call while stopped."""
        if self.running:
            raise RuntimeError("Cannot reset a running emulator")
        self.state = self._fresh_state()
        self.clock.reset()
        self.cycles = 0
        self.error = None
        with self._lock:
            self._keypad[:] = False
            self._frame = np.array(self.state.display)
            self._draw_ready = True

    def _load_keypad(self):
        with self._lock:
            keypad = self._keypad.copy()
        self.state = self.state.replace(keypad=jnp.asarray(keypad))

    def _publish(self):
        if not bool(self.state.draw_flag):
            return
        frame = np.array(self.state.display)
        with self._lock:
            self._frame = frame
            self._draw_ready = True
        self.state = self.state.replace(draw_flag=jnp.zeros((), dtype=jnp.bool_))

    # Presentation role

    def frame(self) -> np.ndarray:
        """Snapshot of the last published display: 2048 pixels, row-major."""
        with self._lock:
            return self._frame.copy()

    def frame_grid(self) -> np.ndarray:
        """Snapshot of the last published display as a (32, 64) array."""
        return self.frame().reshape(SCREEN_HEIGHT, SCREEN_WIDTH)

    def consume_draw_flag(self) -> bool:
        """Return whether a new frame was published, and clear the flag."""
        with self._lock:
            ready = self._draw_ready
            self._draw_ready = False
        return ready

    def set_key(self, key: int, pressed: bool):
        """Set the state of key ``key`` (0x0-0xF)."""
        if not 0 <= key < NUM_KEYS:
            raise ValueError(f"Key index must be in 0..{NUM_KEYS - 1}, got {key}")
        with self._lock:
            self._keypad[key] = bool(pressed)

    def set_keys(self, keys: Mapping[int, bool]):
        """Set several keys at once."""
        for key in keys:
            if not 0 <= key < NUM_KEYS:
                raise ValueError(f"Key index must be in 0..{NUM_KEYS - 1}, got {key}")
        with self._lock:
            for key, pressed in keys.items():
                self._keypad[key] = bool(pressed)

    def keypad(self) -> np.ndarray:
        """Snapshot of the keypad as seen by the next tick."""
        with self._lock:
            return self._keypad.copy()
