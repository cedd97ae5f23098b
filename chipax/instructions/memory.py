"""CHIP-8 memory and register operations."""

import jax
import jax.numpy as jnp

from chipax.constants import MEMORY_SIZE
from chipax.errors import FAULT_MEMORY, fault_if
from chipax.state import EmulatorState
from chipax.decode import Operands
from chipax.instructions.system import advance


def check_range(start, length) -> jnp.ndarray:
    """Fault code for an access to ``[start, start + length)``."""
    return fault_if(jnp.astype(start, jnp.int32) + length > MEMORY_SIZE, FAULT_MEMORY)


def execute_set(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """6XNN - Set VX = NN."""
    return advance(state.replace(V=state.V.at[instruction.x].set(jnp.astype(instruction.nn, jnp.uint8))))


def execute_add(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """7XNN - Add NN to VX, wrapping at 256; VF is untouched."""
    result = (jnp.astype(state.V[instruction.x], jnp.int32) + instruction.nn) & 0xFF
    return advance(state.replace(V=state.V.at[instruction.x].set(jnp.astype(result, jnp.uint8))))


def execute_set_index(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """ANNN - Set I = NNN."""
    return advance(state.replace(I=jnp.astype(instruction.nnn, jnp.uint16)))


def execute_random(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """CXNN - Set VX = random & mask.

    The mask is the current VX, or NN when ``random_mask_register`` is off.
    """
    key, subkey = jax.random.split(state.rng)
    random_value = jax.random.randint(subkey, shape=(), minval=0, maxval=256, dtype=jnp.int32)
    if state.random_mask_register:
        mask = jnp.astype(state.V[instruction.x], jnp.int32)
    else:
        mask = instruction.nn
    result = jnp.astype(random_value & mask, jnp.uint8)
    return advance(state.replace(V=state.V.at[instruction.x].set(result), rng=key))
