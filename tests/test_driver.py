"""Tests for the emulation driver and its hand-off to the front end."""

import numpy as np
import pytest
from chipax import (
    Emulator, EmulatorConfig, DecodeError, RomTooLargeError, StackUnderflowError, MAX_ROM_SIZE,
)


def make_emulator(rom, fake_time, **config):
    return Emulator(
        bytes(rom),
        config=EmulatorConfig(**config) if config else None,
        time_fn=fake_time,
        sleep_fn=fake_time.sleep,
    )


class TestTick:
    """Test wall-clock driven execution."""

    def test_tick_runs_due_cycles(self, fake_time):
        """A quarter second at 500 Hz runs 125 instructions."""
        emulator = make_emulator([0x12, 0x00], fake_time)
        assert emulator.tick() == 0
        fake_time.advance(0.25)
        assert emulator.tick() == 125
        assert emulator.cycles == 125
        assert emulator.state.pc == 0x200

    def test_timers_decay_at_60hz(self, fake_time):
        """Set DT to 0x30 then spin: 15 decrements in a quarter second."""
        emulator = make_emulator([0x60, 0x30, 0xF0, 0x15, 0xF0, 0x18, 0x12, 0x06], fake_time)
        emulator.tick()
        fake_time.advance(0.25)
        emulator.tick()
        assert emulator.state.delay_timer == 0x30 - 15
        assert emulator.state.sound_timer == 0x30 - 15

    def test_late_tick_runs_every_due_cycle(self, fake_time):
        """A one second stall is made up in full on the next tick."""
        emulator = make_emulator([0x12, 0x00], fake_time)
        emulator.tick()
        fake_time.advance(1.0)
        assert emulator.tick() == 500
        assert emulator.cycles == 500
        assert emulator.clock.dropped_cycles == 0

    def test_catch_up_limit_warns(self, fake_time, capsys):
        """With a catch-up limit the dropped cycles are reported."""
        emulator = make_emulator([0x12, 0x00], fake_time, max_catch_up=0.25)
        emulator.tick()
        fake_time.advance(1.0)
        assert emulator.tick() == 125
        assert emulator.clock.dropped_cycles == 375
        assert "dropping 375 cycles" in capsys.readouterr().out

    def test_timers_stop_at_zero(self, fake_time):
        emulator = make_emulator([0x60, 0x02, 0xF0, 0x15, 0x12, 0x04], fake_time)
        emulator.tick()
        fake_time.advance(0.25)
        emulator.tick()
        assert emulator.state.delay_timer == 0


class TestPresentation:
    """Test the frame, draw flag and keypad hand-off."""

    def test_initial_frame_ready(self, fake_time):
        """The blank screen is ready to present before anything runs."""
        emulator = make_emulator([0x12, 0x00], fake_time)
        assert emulator.consume_draw_flag()
        assert not emulator.consume_draw_flag()
        assert emulator.frame().shape == (2048,)
        assert not emulator.frame().any()

    def test_draw_publishes_frame(self, fake_time):
        """Drawing glyph 0 at the origin lights the top row's first four pixels."""
        emulator = make_emulator([0xA0, 0x00, 0xD0, 0x05, 0x12, 0x04], fake_time)
        emulator.consume_draw_flag()
        emulator.run_cycles(3)
        assert emulator.consume_draw_flag()
        grid = emulator.frame_grid()
        assert grid.shape == (32, 64)
        assert list(grid[0, :5]) == [1, 1, 1, 1, 0]
        assert list(grid[1, :5]) == [1, 0, 0, 1, 0]
        # Machine-side flag is cleared once the frame is handed over
        assert not bool(emulator.state.draw_flag)

    def test_no_publish_without_draw(self, fake_time):
        emulator = make_emulator([0x60, 0x01, 0x12, 0x02], fake_time)
        emulator.consume_draw_flag()
        emulator.run_cycles(10)
        assert not emulator.consume_draw_flag()

    def test_frame_is_a_snapshot(self, fake_time):
        """Writing to a returned frame does not affect the emulator."""
        emulator = make_emulator([0x12, 0x00], fake_time)
        frame = emulator.frame()
        frame[:] = 1
        assert not emulator.frame().any()

    def test_set_key_validates_index(self, fake_time):
        emulator = make_emulator([0x12, 0x00], fake_time)
        with pytest.raises(ValueError):
            emulator.set_key(16, True)
        with pytest.raises(ValueError):
            emulator.set_key(-1, True)
        with pytest.raises(ValueError):
            emulator.set_keys({3: True, 0x10: True})
        # Nothing applied from the rejected batch
        assert not emulator.keypad().any()

    def test_set_keys(self, fake_time):
        emulator = make_emulator([0x12, 0x00], fake_time)
        emulator.set_keys({0x1: True, 0xF: True})
        emulator.set_key(0x1, False)
        expected = np.zeros(16, dtype=bool)
        expected[0xF] = True
        assert np.array_equal(emulator.keypad(), expected)

    def test_wait_for_key(self, fake_time):
        """FX0A blocks until a key is pressed, then stores its index."""
        emulator = make_emulator([0xF0, 0x0A, 0x12, 0x02], fake_time)
        emulator.run_cycles(5)
        assert emulator.state.pc == 0x200
        emulator.set_key(7, True)
        emulator.run_cycles(1)
        assert emulator.state.V[0] == 7
        assert emulator.state.pc == 0x202

    def test_key_skip_sees_pressed_key(self, fake_time):
        """EX9E reads the keypad loaded at the start of the tick."""
        emulator = make_emulator([0x60, 0x05, 0xE0, 0x9E, 0x12, 0x04, 0x12, 0x06], fake_time)
        emulator.set_key(5, True)
        emulator.run_cycles(3)
        assert emulator.state.pc == 0x206


class TestRunCycles:
    """Test headless execution."""

    def test_timers_proportional_to_cycles(self, fake_time):
        """At 480 Hz every eighth instruction is one timer decrement."""
        emulator = make_emulator([0x60, 0xFF, 0xF0, 0x15, 0x12, 0x04], fake_time, cpu_frequency=480)
        emulator.run_cycles(482)
        assert emulator.state.delay_timer == 0xFF - 60

    def test_runs_across_batches(self, fake_time):
        emulator = make_emulator([0x12, 0x00], fake_time)
        emulator.run_cycles(25_000)
        assert emulator.cycles == 25_000
        assert emulator.state.pc == 0x200

    def test_progress_bar(self, fake_time):
        emulator = make_emulator([0x12, 0x00], fake_time)
        emulator.run_cycles(20, progress=True)
        assert emulator.cycles == 20

    def test_error_propagates(self, fake_time):
        emulator = make_emulator([0x00, 0xEE], fake_time)
        with pytest.raises(StackUnderflowError) as excinfo:
            emulator.run_cycles(3)
        assert excinfo.value.opcode == 0x00EE
        assert excinfo.value.pc == 0x200
        assert emulator.cycles == 0


class TestRunLoop:
    """Test the blocking and threaded run loop."""

    def test_unknown_opcode_halts_run(self, fake_time):
        """The run loop stops on the first fatal error and reports where it was."""
        def sleep(seconds):
            fake_time.advance(seconds)

        emulator = Emulator(bytes([0xF0, 0xFF]), time_fn=fake_time, sleep_fn=sleep)
        with pytest.raises(DecodeError) as excinfo:
            emulator.run()
        assert excinfo.value.opcode == 0xF0FF
        assert excinfo.value.pc == 0x200
        assert emulator.error is excinfo.value

    def test_run_sleeps_between_ticks(self, fake_time):
        """Each tick is followed by the configured sleep."""
        sleeps = []

        def sleep(seconds):
            sleeps.append(seconds)
            fake_time.advance(seconds)
            if len(sleeps) == 3:
                emulator.stop()

        emulator = Emulator(bytes([0x12, 0x00]), time_fn=fake_time, sleep_fn=sleep)
        emulator.run()
        assert sleeps == [0.01, 0.01, 0.01]
        assert emulator.error is None

    def test_thread_error_reraised_by_join(self):
        emulator = Emulator(bytes([0xF0, 0xFF]))
        emulator.start()
        with pytest.raises(DecodeError):
            emulator.join(timeout=60)
        assert not emulator.running

    def test_thread_stop(self):
        emulator = Emulator(bytes([0x12, 0x00]))
        emulator.start()
        assert emulator.running
        with pytest.raises(RuntimeError):
            emulator.start()
        emulator.stop()
        emulator.join(timeout=60)
        assert not emulator.running
        assert emulator.error is None


class TestLifecycle:
    """Test construction and reset."""

    def test_reset(self, fake_time):
        emulator = make_emulator([0x60, 0x09, 0x12, 0x02], fake_time)
        emulator.set_key(3, True)
        emulator.run_cycles(4)
        emulator.reset()
        assert emulator.cycles == 0
        assert emulator.state.pc == 0x200
        assert emulator.state.V[0] == 0
        assert not emulator.keypad().any()
        assert emulator.consume_draw_flag()

    def test_from_file(self, tmp_path, fake_time):
        rom_file = tmp_path / "maze.ch8"
        rom_file.write_bytes(bytes([0x12, 0x00]))
        emulator = Emulator.from_file(str(rom_file), time_fn=fake_time, sleep_fn=fake_time.sleep)
        assert emulator.name == "maze.ch8"
        assert emulator.state.memory[0x200] == 0x12

    def test_rom_too_large(self):
        with pytest.raises(RomTooLargeError):
            Emulator(bytes(MAX_ROM_SIZE + 1))

    def test_random_mask_register_config(self):
        assert Emulator(bytes([0x12, 0x00])).state.random_mask_register
        emulator = Emulator(bytes([0x12, 0x00]), config=EmulatorConfig(random_mask_register=False))
        assert not emulator.state.random_mask_register

    @pytest.mark.parametrize("field, value", [
        ("cpu_frequency", 0), ("timer_frequency", -60), ("tick_sleep", -0.1), ("max_catch_up", 0.0),
    ])
    def test_invalid_config(self, field, value):
        with pytest.raises(ValueError):
            EmulatorConfig(**{field: value})
