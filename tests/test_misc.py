"""Tests for miscellaneous instructions (Fxxx)."""

import jax.numpy as jnp
import pytest
from chipax import execute, MemoryAccessError
from conftest import set_registers


class TestTimers:
    """Test timer-related instructions."""

    def test_misc_timer_instructions(self, fresh_state):
        """Test timer set and get operations."""
        state = fresh_state

        state = execute(state, 0x6030)  # V0 = 48
        state = execute(state, 0xF015)  # Set delay timer to V0
        assert state.delay_timer == 48

        state = execute(state, 0x6120)  # V1 = 32
        state = execute(state, 0xF118)  # Set sound timer to V1
        assert state.sound_timer == 32

        state = execute(state, 0xF207)  # V2 = delay timer
        assert state.V[2] == 48
        assert state.pc == 0x20A


class TestBCD:
    """Test BCD conversion."""

    def test_misc_bcd_conversion(self, fresh_state):
        """Test BCD conversion with 157."""
        state = execute(fresh_state, 0x609D)  # V0 = 157
        state = execute(state, 0xA300)  # I = 0x300
        state = execute(state, 0xF033)  # BCD conversion

        assert state.memory[0x300] == 1  # Hundreds
        assert state.memory[0x301] == 5  # Tens
        assert state.memory[0x302] == 7  # Ones
        assert state.I == 0x300

    @pytest.mark.parametrize("value, digits", [(0, (0, 0, 0)), (9, (0, 0, 9)), (40, (0, 4, 0)), (255, (2, 5, 5))])
    def test_bcd_edge_cases(self, fresh_state, value, digits):
        """Test BCD with edge cases."""
        state = set_registers(fresh_state, V6=value)
        state = execute(state, 0xA400)
        state = execute(state, 0xF633)

        assert tuple(int(d) for d in state.memory[0x400:0x403]) == digits

    def test_bcd_past_end_of_memory(self, fresh_state):
        """FX33 with I = 0xFFE would write past 0xFFF."""
        state = execute(fresh_state, 0xAFFE)
        with pytest.raises(MemoryAccessError):
            execute(state, 0xF033)


class TestFont:
    """Test font character addressing."""

    def test_misc_font_character(self, fresh_state):
        """Test font character addressing."""
        state = execute(fresh_state, 0x600A)  # V0 = 0xA
        state = execute(state, 0xF029)  # I = font address for A

        assert state.I == 0xA * 5

    def test_font_all_characters(self, fresh_state):
        """Test font addressing for all hex digits."""
        state = fresh_state

        for digit in range(16):
            state = execute(state, 0x6000 | digit)  # V0 = digit
            state = execute(state, 0xF029)  # I = font address

            assert state.I == digit * 5, f"Font address wrong for digit {digit:X}"
            assert state.memory[int(state.I)] != 0


class TestMemoryOperations:
    """Test store/load register operations."""

    def test_store_load_round_trip(self, fresh_state):
        """FX55 then FX65 over V0..V3 restores the registers; I does not move."""
        state = set_registers(fresh_state, V0=1, V1=0x22, V2=0xFE, V3=0x80, V4=0x44)
        state = execute(state, 0xA300)  # I = 0x300

        state = execute(state, 0xF355)  # Store V0-V3
        assert state.I == 0x300
        assert [int(b) for b in state.memory[0x300:0x305]] == [1, 0x22, 0xFE, 0x80, 0]

        state = set_registers(state, V0=0, V1=0, V2=0, V3=0)
        state = execute(state, 0xF365)  # Load V0-V3
        assert [int(v) for v in state.V[:5]] == [1, 0x22, 0xFE, 0x80, 0x44]
        assert state.I == 0x300

    def test_store_single_register(self, fresh_state):
        """F055 writes only V0."""
        state = set_registers(fresh_state, V0=0x11, V1=0x22)
        state = execute(state, 0xA300)
        state = execute(state, 0xF055)

        assert state.memory[0x300] == 0x11
        assert state.memory[0x301] == 0

    def test_load_all_registers(self, fresh_state):
        """FF65 fills V0..VF in ascending order."""
        state = fresh_state.replace(memory=fresh_state.memory.at[0x300:0x310].set(jnp.arange(16, dtype=jnp.uint8)))
        state = execute(state, 0xA300)
        state = execute(state, 0xFF65)

        assert [int(v) for v in state.V] == list(range(16))

    def test_store_past_end_of_memory(self, fresh_state):
        """FX55 that would run past 0xFFF is fatal."""
        state = execute(fresh_state, 0xAFFC)
        with pytest.raises(MemoryAccessError) as excinfo:
            execute(state, 0xF455)
        assert excinfo.value.opcode == 0xF455


class TestWaitForKey:
    """Test FX0A."""

    def test_wait_for_key_blocking(self, fresh_state):
        """FX0A - With no key pressed PC stays on the instruction."""
        state = execute(fresh_state, 0xF30A)

        assert state.pc == fresh_state.pc
        assert state.V[3] == 0

    def test_wait_for_key_is_reentrant(self, fresh_state):
        """FX0A - Re-executing while waiting changes nothing."""
        state = fresh_state
        for _ in range(5):
            state = execute(state, 0xF30A)
        assert state.pc == 0x200

        state = state.replace(keypad=state.keypad.at[0xB].set(True))
        state = execute(state, 0xF30A)
        assert state.V[3] == 0xB
        assert state.pc == 0x202

    def test_wait_for_key_pressed(self, fresh_state):
        """FX0A - A pressed key is stored and PC advances."""
        state = fresh_state.replace(keypad=fresh_state.keypad.at[7].set(True))

        state = execute(state, 0xF00A)

        assert state.V[0] == 7
        assert state.pc == 0x202

    def test_wait_for_key_lowest_index(self, fresh_state):
        """FX0A - With several keys down the lowest index wins."""
        state = fresh_state.replace(keypad=fresh_state.keypad.at[9].set(True).at[4].set(True))

        state = execute(state, 0xF10A)

        assert state.V[1] == 4

    def test_wait_for_key_accepts_held_key(self, fresh_state):
        """FX0A - A key already held when the wait starts completes it at once."""
        state = fresh_state.replace(keypad=fresh_state.keypad.at[0xB].set(True))
        state = execute(state, 0xF20A)
        assert state.V[2] == 0xB
        assert state.pc == 0x202
        # Still held: the next FX0A completes again without a new press
        state = execute(state, 0xF30A)
        assert state.V[3] == 0xB
        assert state.pc == 0x204


class TestIndexArithmetic:
    """Test FX1E."""

    def test_add_to_index(self, fresh_state):
        """FX1E - Add VX to I register."""
        state = execute(fresh_state, 0x6010)  # V0 = 0x10
        state = execute(state, 0xA300)  # I = 0x300
        state = execute(state, 0xF01E)  # I += V0

        assert state.I == 0x310

    def test_add_to_index_wraps(self, fresh_state):
        """FX1E - I stays within 12 bits and VF is untouched."""
        state = set_registers(fresh_state, V0=0xFF, VF=0x05)
        state = execute(state, 0xAF80)  # I = 0xF80
        state = execute(state, 0xF01E)  # I += V0

        assert state.I == 0x07F
        assert state.V[15] == 0x05
