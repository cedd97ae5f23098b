"""CHIP-8 emulator state structures."""

from typing import Optional

import jax
import jax.numpy as jnp
from flax.struct import dataclass, PyTreeNode, field

from chipax.constants import (
    FONT_DATA, FONT_START, MAX_ROM_SIZE, MEMORY_SIZE, NUM_KEYS, NUM_PIXELS,
    NUM_REGISTERS, PROGRAM_START, STACK_SIZE,
)
from chipax.errors import RomTooLargeError


def _zeros(shape, dtype):
    return field(default_factory=lambda: jnp.zeros(shape, dtype=dtype))


@dataclass(frozen=True)
class StackState:
    """Call stack for subroutine return addresses.

    ``pointer`` is the number of live entries; the next push writes
    ``data[pointer]``.
    """
    data: jnp.ndarray = _zeros(STACK_SIZE, jnp.uint16)
    pointer: jnp.ndarray = _zeros((), jnp.int32)


class EmulatorState(PyTreeNode):
    """Main CHIP-8 machine state.

    The display is a flat, row-major buffer of 64x32 pixels (index
    ``x + y * 64``) holding 0 or 1. ``draw_flag`` is raised by CLS and DRW and
    cleared by whoever presents the frame.

    Every array keeps a fixed shape and dtype so that the state can be carried
    through compiled instruction kernels.
    """
    rng: jax.random.PRNGKey
    memory: jnp.ndarray = _zeros(MEMORY_SIZE, jnp.uint8)
    pc: jnp.ndarray = field(default_factory=lambda: jnp.asarray(PROGRAM_START, dtype=jnp.uint16))
    display: jnp.ndarray = _zeros(NUM_PIXELS, jnp.uint8)
    draw_flag: jnp.ndarray = _zeros((), jnp.bool_)
    stack: StackState = field(default_factory=StackState)
    delay_timer: jnp.ndarray = _zeros((), jnp.uint8)
    sound_timer: jnp.ndarray = _zeros((), jnp.uint8)
    keypad: jnp.ndarray = _zeros(NUM_KEYS, jnp.bool_)
    V: jnp.ndarray = _zeros(NUM_REGISTERS, jnp.uint8)
    I: jnp.ndarray = _zeros((), jnp.uint16)
    random_mask_register: bool = field(pytree_node=False, default=True)


def load_rom(state: EmulatorState, rom: bytes, name: str = "<memory>") -> EmulatorState:
    """Load ROM bytes into CHIP-8 memory starting at 0x200.

    Raises:
        RomTooLargeError: If the ROM does not fit between 0x200 and 0xFFF.
    """
    if len(rom) > MAX_ROM_SIZE:
        raise RomTooLargeError(name, len(rom), MAX_ROM_SIZE)
    if not rom:
        return state
    rom_array = jnp.array(list(rom), dtype=jnp.uint8)
    new_memory = state.memory.at[PROGRAM_START:PROGRAM_START + len(rom)].set(rom_array)
    return state.replace(memory=new_memory)


def create_state(
    rng: jax.random.PRNGKey = jax.random.PRNGKey(0),
    rom: Optional[bytes] = None,
    random_mask_register: bool = True,
) -> EmulatorState:
    """Create initial emulator state with font data and, optionally, a ROM loaded.

    ``random_mask_register`` selects the CXKK mask: the current VX when True,
    the KK operand when False.
    """
    state = EmulatorState(rng, random_mask_register=random_mask_register)
    state = state.replace(memory=state.memory.at[FONT_START:FONT_START + len(FONT_DATA)].set(FONT_DATA))
    if rom is not None:
        state = load_rom(state, rom)
    return state
