"""CHIP-8 miscellaneous instructions (Fxxx)."""

import jax.numpy as jnp

from chipax.constants import ADDRESS_MASK, FONT_GLYPH_SIZE, FONT_START, NUM_REGISTERS
from chipax.state import EmulatorState
from chipax.decode import Operands
from chipax.instructions.memory import check_range
from chipax.instructions.system import advance

_register_offsets = jnp.arange(NUM_REGISTERS)


def execute_get_delay_timer(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    return advance(state.replace(V=state.V.at[instruction.x].set(state.delay_timer)))


def execute_set_delay_timer(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    return advance(state.replace(delay_timer=state.V[instruction.x]))


def execute_set_sound_timer(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    return advance(state.replace(sound_timer=state.V[instruction.x]))


def execute_add_to_index(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """FX1E - Add VX to I register, keeping 12 bits."""
    new_i = (jnp.astype(state.I, jnp.int32) + jnp.astype(state.V[instruction.x], jnp.int32)) & ADDRESS_MASK
    return advance(state.replace(I=jnp.astype(new_i, jnp.uint16)))


def execute_wait_for_key(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """FX0A - Wait for key press.

    The keypad is sampled as a level: a key already held when FX0A starts
    satisfies the wait at once, with the lowest pressed key index winning.
    Without a pressed key PC stays put and the instruction runs again next
    cycle; timers keep decaying meanwhile.
    """
    pressed = jnp.any(state.keypad)
    pressed_key = jnp.astype(jnp.argmax(state.keypad), jnp.uint8)
    new_V = state.V.at[instruction.x].set(jnp.where(pressed, pressed_key, state.V[instruction.x]))
    return advance(state.replace(V=new_V), jnp.where(pressed, 1, 0))


def execute_font_character(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """FX29 - Set I to location of sprite for digit VX."""
    font_address = FONT_START + jnp.astype(state.V[instruction.x], jnp.int32) * FONT_GLYPH_SIZE
    return advance(state.replace(I=jnp.astype(font_address, jnp.uint16)))


def execute_bcd_conversion(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = jnp.astype(state.V[instruction.x], jnp.int32)
    digits = jnp.astype(jnp.stack([value // 100, (value // 10) % 10, value % 10]), jnp.uint8)
    addresses = jnp.astype(state.I, jnp.int32) + jnp.arange(3)
    return advance(state.replace(memory=state.memory.at[addresses].set(digits)))


def check_bcd_conversion(state: EmulatorState, instruction: Operands) -> jnp.ndarray:
    return check_range(state.I, 3)


def execute_store_registers(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """FX55 - Store V0 through VX in memory starting at I."""
    addresses = jnp.astype(state.I, jnp.int32) + _register_offsets
    selected = _register_offsets <= instruction.x
    values = jnp.where(selected, state.V, state.memory[addresses])
    return advance(state.replace(memory=state.memory.at[addresses].set(values)))


def execute_load_registers(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """FX65 - Load V0 through VX from memory starting at I."""
    addresses = jnp.astype(state.I, jnp.int32) + _register_offsets
    selected = _register_offsets <= instruction.x
    return advance(state.replace(V=jnp.where(selected, state.memory[addresses], state.V)))


def check_register_transfer(state: EmulatorState, instruction: Operands) -> jnp.ndarray:
    return check_range(state.I, instruction.x + 1)
